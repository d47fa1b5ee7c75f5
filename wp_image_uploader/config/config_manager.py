"""
設定管理クラス - config.json の読み書きと機密情報の暗号化
"""
import base64
import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from cryptography.fernet import Fernet, InvalidToken

from ..services.exceptions import ConfigurationError, FileOperationError
from ..utils.constants import Constants, ImageDefaults
from ..utils.utils import mask_secret

logger = logging.getLogger(__name__)

# Fernetトークンの識別子
ENCRYPTED_PREFIX = 'gAAAAAB'


@dataclass
class OpenAIConfig:
    """OpenAI API設定"""
    api_url: str
    api_key: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OpenAIConfig':
        return cls(
            api_url=data.get('api_url') or Constants.OPENAI_DEFAULT_API_URL,
            api_key=data.get('api_key', '')
        )


@dataclass
class WordPressSite:
    """WordPressサイト設定（画像設定はサイト単位で上書き可能）"""
    id: str
    site_url: str
    username: str
    app_password: str
    context: Optional[str] = None
    convert_to_webp: Optional[bool] = None
    quality: Optional[int] = None
    max_width: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WordPressSite':
        return cls(
            id=str(data['id']),
            site_url=data.get('site_url', ''),
            username=data.get('username', ''),
            app_password=data.get('app_password', ''),
            context=data.get('context'),
            convert_to_webp=data.get('convert_to_webp'),
            quality=data.get('quality'),
            max_width=data.get('max_width')
        )


@dataclass
class ImageOptimizerConfig:
    """画像最適化のグローバル設定"""
    convert_to_webp: bool = ImageDefaults.CONVERT_TO_WEBP
    max_width: int = ImageDefaults.MAX_WIDTH
    quality: int = ImageDefaults.QUALITY

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageOptimizerConfig':
        return cls(
            convert_to_webp=bool(data.get('convert_to_webp', ImageDefaults.CONVERT_TO_WEBP)),
            max_width=int(data.get('max_width', ImageDefaults.MAX_WIDTH)),
            quality=int(data.get('quality', ImageDefaults.QUALITY))
        )


@dataclass
class AppConfig:
    """アプリケーション設定全体"""
    openai: Optional[OpenAIConfig] = None
    wordpress_sites: List[WordPressSite] = field(default_factory=list)
    image_optimizer: ImageOptimizerConfig = field(default_factory=ImageOptimizerConfig)

    def find_site(self, site_id: str) -> Optional[WordPressSite]:
        """IDでサイトを検索"""
        for site in self.wordpress_sites:
            if site.id == site_id:
                return site
        return None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AppConfig':
        openai_data = data.get('openai')
        return cls(
            openai=OpenAIConfig.from_dict(openai_data) if openai_data else None,
            wordpress_sites=[WordPressSite.from_dict(site) for site in data.get('wordpress_sites') or []],
            image_optimizer=ImageOptimizerConfig.from_dict(data.get('image_optimizer') or {})
        )


def default_config_dir() -> Path:
    """アプリケーションデータディレクトリを取得"""
    override = os.getenv(Constants.CONFIG_DIR_ENV)
    if override:
        return Path(override)
    
    base = os.getenv('APPDATA') or os.getenv('XDG_CONFIG_HOME')
    if base:
        return Path(base) / Constants.APP_NAME
    return Path.home() / '.config' / Constants.APP_NAME


class ConfigManager:
    """設定管理クラス"""
    
    # 暗号化して保存するキー
    SENSITIVE_KEYS = ('api_key', 'app_password')
    
    def __init__(self, config_dir: Optional[Path] = None):
        """
        設定管理クラスの初期化
        
        Args:
            config_dir: 設定ディレクトリ（省略時は環境変数またはユーザー設定ディレクトリ）
        """
        self.config_dir = Path(config_dir) if config_dir else default_config_dir()
        self._fernet: Optional[Fernet] = None
    
    @property
    def config_path(self) -> Path:
        """設定ファイルパス"""
        return self.config_dir / Constants.CONFIG_FILE_NAME
    
    @property
    def fernet(self) -> Fernet:
        """遅延初期化された暗号化器"""
        if self._fernet is None:
            self._fernet = Fernet(self._get_or_create_encryption_key())
        return self._fernet
    
    def _ensure_config_dir(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(f"Failed to create app directory: {e}")
    
    def _get_or_create_encryption_key(self) -> bytes:
        """暗号化キーを取得または作成"""
        env_key = os.getenv(Constants.ENCRYPTION_KEY_ENV)
        if env_key:
            try:
                key = env_key.encode()
                # 形式チェック（32バイトのurlsafe base64）
                if len(base64.urlsafe_b64decode(key)) == 32:
                    return key
                logger.warning("環境変数の暗号化キーの長さが不正です")
            except (ValueError, TypeError) as e:
                logger.warning(f"環境変数の暗号化キーが無効: {e}")
        
        key_file = self.config_dir / Constants.ENCRYPTION_KEY_FILE
        if key_file.exists():
            try:
                return key_file.read_bytes().strip()
            except OSError as e:
                logger.warning(f"キーファイル読み込みエラー: {e}")
        
        logger.info("新しい暗号化キーを生成中...")
        key = Fernet.generate_key()
        
        self._ensure_config_dir()
        try:
            key_file.write_bytes(key)
            os.chmod(key_file, 0o600)  # 所有者のみ読み書き可能
            logger.info("暗号化キーをファイルに保存しました")
        except OSError as e:
            logger.error(f"暗号化キー保存エラー: {e}")
        
        return key
    
    def encrypt_sensitive_data(self, data: str) -> str:
        """機密データを暗号化"""
        return self.fernet.encrypt(data.encode()).decode()
    
    def decrypt_sensitive_data(self, encrypted_data: str) -> str:
        """
        暗号化データを復号化
        
        平文（手動編集された設定ファイル）はそのまま返す
        """
        if not encrypted_data or not encrypted_data.startswith(ENCRYPTED_PREFIX):
            return encrypted_data
        try:
            return self.fernet.decrypt(encrypted_data.encode()).decode()
        except InvalidToken:
            raise ConfigurationError("Failed to decrypt config: encryption key does not match")
    
    def _transform_secrets(self, data: Dict[str, Any], transform) -> Dict[str, Any]:
        """openai と各サイトの機密項目に変換を適用"""
        openai_data = data.get('openai')
        if openai_data and openai_data.get('api_key'):
            openai_data['api_key'] = transform(openai_data['api_key'])
        for site in data.get('wordpress_sites') or []:
            if site.get('app_password'):
                site['app_password'] = transform(site['app_password'])
        return data
    
    def load(self) -> AppConfig:
        """
        設定を読み込み
        
        Returns:
            設定（ファイルがなければデフォルト値）
        
        Raises:
            ConfigurationError: 読み込み・解析に失敗した場合
        """
        if not self.config_path.exists():
            logger.info(f"Config file not found, using defaults: {self.config_path}")
            return AppConfig()
        
        try:
            content = self.config_path.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(f"Failed to read config: {e}")
        
        try:
            data = json.loads(content)
            data = self._transform_secrets(data, self.decrypt_sensitive_data)
            config = AppConfig.from_dict(data)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Failed to parse config: {e}")
        
        logger.debug(f"Loaded config with {len(config.wordpress_sites)} site(s)")
        return config
    
    def save(self, config: AppConfig) -> None:
        """
        設定を保存（機密情報は暗号化）
        
        Raises:
            FileOperationError: 書き込みに失敗した場合
        """
        self._ensure_config_dir()
        data = self._transform_secrets(config.to_dict(), self.encrypt_sensitive_data)
        content = json.dumps(data, ensure_ascii=False, indent=2)
        
        try:
            self.config_path.write_text(content, encoding='utf-8')
        except OSError as e:
            raise FileOperationError(f"Failed to write config: {e}")
        
        logger.info(f"Config saved: {self.config_path}")
    
    def get_config_summary(self, config: AppConfig) -> Dict[str, Any]:
        """設定サマリーを取得（機密情報をマスク）"""
        summary: Dict[str, Any] = {
            'config_path': str(self.config_path),
            'openai': None,
            'wordpress_sites': [],
            'image_optimizer': asdict(config.image_optimizer)
        }
        
        if config.openai:
            summary['openai'] = {
                'api_url': config.openai.api_url,
                'api_key': mask_secret(config.openai.api_key)
            }
        
        for site in config.wordpress_sites:
            site_summary = asdict(site)
            site_summary['app_password'] = mask_secret(site.app_password)
            summary['wordpress_sites'].append(site_summary)
        
        return summary
