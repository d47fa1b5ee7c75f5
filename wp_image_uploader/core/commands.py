"""
コマンドバックエンド - 設定の読み書き、認証情報の検証、画像の解析とアップロード
"""
import base64
import binascii
import logging
import os
from typing import Any, Callable, Dict, Optional

from ..api.openai_api import OpenAIAPI
from ..api.wordpress_api import WordPressAPI
from ..config.config_manager import AppConfig, ConfigManager
from ..services.exceptions import ConfigurationError, ImageProcessingError, ImageUploaderError
from ..utils.constants import Constants
from ..utils.utils import match_extension_to_mime_type
from .models import ProcessImageRequest, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)

EmitCallback = Callable[[str, Dict[str, Any]], None]


class CommandBackend:
    """
    ブリッジから名前で呼び出されるコマンド群

    各コマンドは失敗時に ImageUploaderError を送出する
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        emit: Optional[EmitCallback] = None,
        openai_client_factory: Callable[..., OpenAIAPI] = OpenAIAPI,
        wordpress_client_factory: Callable[..., WordPressAPI] = WordPressAPI
    ):
        """
        Args:
            config_manager: 設定管理（省略時はデフォルトディレクトリ）
            emit: イベント送出コールバック (event_name, payload)
            openai_client_factory: OpenAIクライアント生成関数
            wordpress_client_factory: WordPressクライアント生成関数
        """
        self.config_manager = config_manager or ConfigManager()
        self.emit = emit or (lambda event, payload: None)
        self.openai_client_factory = openai_client_factory
        self.wordpress_client_factory = wordpress_client_factory
        self.timeout = int(os.getenv('API_TIMEOUT', str(Constants.API_TIMEOUT)))

    @property
    def commands(self) -> Dict[str, Callable[..., Any]]:
        """コマンド名と処理の対応表"""
        return {
            'get_config': self.get_config,
            'save_config': self.save_config,
            'validate_openai_config': self.validate_openai_config,
            'validate_wordpress_config': self.validate_wordpress_config,
            'process_image_task': self.process_image_task,
        }

    def get_config(self) -> AppConfig:
        """設定を読み込み（ファイルがなければデフォルト）"""
        return self.config_manager.load()

    def save_config(self, config: AppConfig) -> None:
        """設定を保存"""
        self.config_manager.save(config)

    def validate_openai_config(self, api_url: str, api_key: str) -> bool:
        """OpenAI APIキーを検証"""
        with self.openai_client_factory(api_key=api_key, api_url=api_url, timeout=self.timeout) as client:
            return client.validate_key()

    def validate_wordpress_config(self, site_url: str, username: str, app_password: str) -> bool:
        """WordPressの認証情報をアップロード権限まで含めて検証"""
        with self.wordpress_client_factory(site_url, username, app_password, timeout=self.timeout) as client:
            return client.validate_credentials()

    def _emit_task_update(self, filename: str, status: TaskStatus, error: Optional[str] = None) -> None:
        update = TaskUpdate(filename=filename, status=status, error=error)
        try:
            self.emit(Constants.TASK_UPDATE_EVENT, update.to_dict())
        except Exception as e:
            # 購読側の失敗で処理を止めない
            logger.warning(f"Failed to emit task update for {filename}: {e}")

    def process_image_task(self, request: ProcessImageRequest) -> str:
        """
        画像をAIで解析し、WordPressにアップロード

        Args:
            request: 解析・アップロード依頼

        Returns:
            アップロードされたメディアのURL

        Raises:
            ConfigurationError: OpenAI未設定・サイトが見つからない場合
            ImageUploaderError: 解析・アップロードに失敗した場合
        """
        config = self.get_config()

        if config.openai is None:
            raise ConfigurationError("OpenAI configuration not found")

        site = config.find_site(request.target_site_id)
        if site is None:
            raise ConfigurationError("WordPress site not found")

        filename = request.metadata.filename

        self._emit_task_update(filename, TaskStatus.ANALYZING)
        try:
            with self.openai_client_factory(
                api_key=config.openai.api_key, api_url=config.openai.api_url, timeout=self.timeout
            ) as openai_client:
                analysis = openai_client.analyze_image(
                    request.image_data,
                    context=site.context,
                    mime_type=request.metadata.mime_type or None
                )
        except ImageUploaderError as e:
            self._emit_task_update(filename, TaskStatus.ERROR, str(e))
            raise

        self._emit_task_update(filename, TaskStatus.UPLOADING)
        try:
            try:
                image_bytes = base64.b64decode(request.image_data, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ImageProcessingError(f"Failed to decode image: {e}")

            upload_name = match_extension_to_mime_type(analysis.filename, request.metadata.mime_type)
            with self.wordpress_client_factory(
                site.site_url, site.username, site.app_password, timeout=self.timeout
            ) as wp_client:
                media_url = wp_client.upload_image_with_metadata(
                    image_bytes,
                    upload_name,
                    title=analysis.title,
                    alt_text=analysis.alt_text,
                    description=analysis.description,
                    mime_type=request.metadata.mime_type or None
                )
        except ImageUploaderError as e:
            self._emit_task_update(filename, TaskStatus.ERROR, str(e))
            raise

        self._emit_task_update(filename, TaskStatus.COMPLETED)
        logger.info(f"Uploaded {filename} as {upload_name}: {media_url}")
        return media_url
