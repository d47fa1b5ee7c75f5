"""
共通ユーティリティ関数
"""
import logging
import os
import sys
import time
import uuid
from datetime import datetime
from functools import wraps
from typing import Optional, Tuple, Type


def setup_logging(log_level: str = 'INFO', log_dir: str = 'logs') -> logging.Logger:
    """
    ログ設定のセットアップ
    
    Args:
        log_level: ログレベル
        log_dir: ログディレクトリ
    
    Returns:
        設定済みのロガー
    """
    from .constants import Constants
    
    # ログディレクトリの作成
    os.makedirs(log_dir, exist_ok=True)
    
    # ログファイル名（日付付き）
    log_file = os.path.join(
        log_dir, f'wp_image_uploader_{datetime.now().strftime(Constants.LOG_DATE_FORMAT)}.log'
    )
    
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=Constants.LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )
    
    return logging.getLogger(__name__)


def retry_on_exception(
    max_retries: int = 3,
    delay: float = 1.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)
):
    """
    例外発生時のリトライデコレータ
    
    Args:
        max_retries: 最大リトライ回数
        delay: リトライ間隔（秒）
        exceptions: リトライ対象の例外
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None
            
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_retries:
                        logging.getLogger(__name__).warning(
                            f"Attempt {attempt + 1} failed: {e}. Retrying in {delay}s..."
                        )
                        time.sleep(delay)
                    else:
                        logging.getLogger(__name__).error(
                            f"All {max_retries + 1} attempts failed"
                        )
            
            raise last_exception
        
        return wrapper
    
    return decorator


def generate_id() -> str:
    """一意なIDを生成"""
    return uuid.uuid4().hex


def format_file_size(size_bytes: int) -> str:
    """
    ファイルサイズを人間が読みやすい形式にフォーマット
    
    Args:
        size_bytes: バイト数
    
    Returns:
        フォーマットされたサイズ文字列
    """
    if size_bytes == 0:
        return "0B"
    
    units = ['B', 'KB', 'MB', 'GB']
    unit_index = 0
    size = float(size_bytes)
    
    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1
    
    return f"{size:.1f}{units[unit_index]}"


def replace_extension(filename: str, extension: str) -> str:
    """
    ファイル名の拡張子を置き換え（拡張子がなければ付与）
    
    Args:
        filename: 元のファイル名
        extension: 新しい拡張子（".webp" など）
    """
    stem, dot, _ = filename.rpartition('.')
    if not dot or not stem:
        return f"{filename}{extension}"
    return f"{stem}{extension}"


def mime_type_for_filename(filename: str) -> str:
    """ファイル名の拡張子からアップロード用MIMEタイプを決定"""
    lowered = filename.lower()
    if lowered.endswith('.webp'):
        return 'image/webp'
    if lowered.endswith('.png'):
        return 'image/png'
    return 'image/jpeg'


MIME_EXTENSIONS = {
    'image/webp': '.webp',
    'image/png': '.png',
    'image/jpeg': '.jpg',
    'image/gif': '.gif',
    'image/bmp': '.bmp',
    'image/tiff': '.tiff',
}


def match_extension_to_mime_type(filename: str, mime_type: Optional[str]) -> str:
    """
    ファイル名の拡張子を実際のMIMEタイプに合わせる

    Args:
        filename: ファイル名
        mime_type: 実データのMIMEタイプ（不明ならファイル名をそのまま返す）
    """
    extension = MIME_EXTENSIONS.get(mime_type or '')
    if not extension:
        return filename
    if filename.lower().endswith(extension) or (extension == '.jpg' and filename.lower().endswith('.jpeg')):
        return filename
    return replace_extension(filename, extension)


def mask_secret(value: Optional[str]) -> str:
    """機密情報をマスクして末尾4文字のみ表示"""
    if not value:
        return "未設定"
    masked = '*' * min(len(value), 8)
    if len(value) > 4:
        masked += value[-4:]
    return masked

