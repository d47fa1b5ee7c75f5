"""
WordPress REST API クライアント - メディアライブラリ操作
"""
import base64
import logging
from typing import Dict, Optional, Union

import requests

from ..services.exceptions import WordPressAPIError
from ..services.resource_manager import SessionMixin
from ..utils.constants import Constants
from ..utils.utils import mime_type_for_filename, retry_on_exception

logger = logging.getLogger(__name__)


class WordPressAPI(SessionMixin):
    """WordPress REST API クライアント"""
    
    def __init__(self, url: str, username: str, password: str, timeout: int = Constants.API_TIMEOUT):
        """
        WordPress REST APIクライアントの初期化
        
        Args:
            url: WordPressサイトのURL
            username: ユーザー名
            password: アプリケーションパスワード
            timeout: リクエストタイムアウト（秒）
        """
        super().__init__()
        self.site_url = url.strip().rstrip('/')
        self.api_url = f"{self.site_url}/wp-json/{Constants.WP_API_VERSION}"
        self.username = username
        self.password = password
        self.timeout = timeout
        
        logger.info(f"WordPress API client initialized for: {self.site_url}")
    
    def _configure_session(self, session: requests.Session) -> None:
        session.auth = (self.username, self.password)
    
    def test_connection(self) -> bool:
        """
        認証情報でユーザー情報が取得できるか確認
        
        Returns:
            接続成功時True、認証失敗時False
        
        Raises:
            WordPressAPIError: 通信に失敗した場合
        """
        try:
            response = self.session.get(f"{self.api_url}/users/me", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Connection test error: {e}")
            raise WordPressAPIError(f"Authentication failed: {e}")
        
        if response.ok:
            try:
                name = response.json().get('name', 'Unknown')
            except (ValueError, AttributeError):
                name = 'Unknown'
            logger.info(f"Connected as user: {name}")
            return True
        
        logger.error(f"Connection test failed: {response.status_code}")
        return False
    
    def upload_media(
        self,
        image_bytes: bytes,
        filename: str,
        mime_type: Optional[str] = None
    ) -> Dict[str, Union[int, str]]:
        """
        画像をメディアライブラリにアップロード
        
        Args:
            image_bytes: 画像データ
            filename: アップロード時のファイル名
            mime_type: MIMEタイプ（省略時は拡張子から判定）
        
        Returns:
            {'id': メディアID, 'url': source_url}
        
        Raises:
            WordPressAPIError: アップロードに失敗した場合
        """
        content_type = mime_type or mime_type_for_filename(filename)
        files = {
            'file': (filename, image_bytes, content_type)
        }
        
        logger.info(f"Uploading to WordPress: {self.api_url}/media ({filename}, {len(image_bytes)} bytes)")
        
        try:
            response = self.session.post(f"{self.api_url}/media", files=files, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Upload request failed: {e}")
            raise WordPressAPIError(f"Upload request failed: {e}")
        
        if not response.ok:
            logger.error(f"Failed to upload media: HTTP {response.status_code}")
            logger.error(f"Response body: {response.text[:500]}")
            if response.status_code == 401:
                logger.error("Authentication failed - check WordPress credentials")
            elif response.status_code == 403:
                logger.error("Permission denied - user may not have media upload privileges")
            raise WordPressAPIError(f"WordPress upload failed: {response.text}")
        
        try:
            media_data = response.json()
            media_id = int(media_data['id'])
        except (ValueError, KeyError, TypeError) as e:
            raise WordPressAPIError(f"Failed to parse upload response: {e}")
        
        logger.info(f"Successfully uploaded media: {filename} (ID: {media_id})")
        return {
            'id': media_id,
            'url': media_data.get('source_url', '')
        }
    
    @retry_on_exception(
        max_retries=Constants.MAX_RETRIES,
        delay=Constants.RETRY_DELAY,
        exceptions=(WordPressAPIError,)
    )
    def update_media_metadata(
        self,
        media_id: int,
        title: str,
        alt_text: str,
        caption: str,
        description: str
    ) -> None:
        """
        メディアのタイトル・代替テキスト・キャプション・説明を更新
        
        Raises:
            WordPressAPIError: 更新に失敗した場合
        """
        metadata = {
            'title': title,
            'alt_text': alt_text,
            'caption': caption,
            'description': description,
        }
        
        try:
            response = self.session.post(
                f"{self.api_url}/media/{media_id}", json=metadata, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise WordPressAPIError(f"Metadata update failed: {e}")
        
        if not response.ok:
            raise WordPressAPIError(f"Metadata update failed: HTTP {response.status_code} - {response.text[:200]}")
        
        logger.info(f"Updated media metadata: ID {media_id}")
    
    def delete_media(self, media_id: int, force: bool = True) -> bool:
        """
        メディアを削除
        
        Args:
            media_id: メディアID
            force: ゴミ箱を経由せず完全に削除
        
        Returns:
            削除成功時True
        
        Raises:
            WordPressAPIError: 通信に失敗した場合
        """
        try:
            response = self.session.delete(
                f"{self.api_url}/media/{media_id}",
                params={'force': 'true' if force else 'false'},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise WordPressAPIError(f"Failed to delete test image: {e}")
        
        if response.ok:
            logger.info(f"Deleted media: ID {media_id}")
        else:
            logger.warning(f"Failed to delete media {media_id}: HTTP {response.status_code}")
        return response.ok
    
    def validate_credentials(self) -> bool:
        """
        アップロード権限まで含めて認証情報を検証
        
        1x1 のテスト画像をアップロードし、すぐに削除する
        
        Returns:
            検証成功時True、認証失敗時False
        
        Raises:
            WordPressAPIError: アップロード権限がない・通信に失敗した場合
        """
        if not self.test_connection():
            return False
        
        image_bytes = base64.b64decode(Constants.VALIDATION_IMAGE_BASE64)
        try:
            media = self.upload_media(image_bytes, Constants.VALIDATION_IMAGE_NAME, 'image/png')
        except WordPressAPIError as e:
            raise WordPressAPIError(f"Upload permission denied: {e}")
        
        self.delete_media(media['id'], force=True)
        logger.info(f"WordPress credentials validated for {self.site_url}")
        return True
    
    def upload_image_with_metadata(
        self,
        image_bytes: bytes,
        filename: str,
        title: str,
        alt_text: str,
        description: str,
        mime_type: Optional[str] = None
    ) -> str:
        """
        画像をアップロードしてメタデータを設定
        
        Returns:
            アップロードされたメディアのURL
        """
        media = self.upload_media(image_bytes, filename, mime_type)
        self.update_media_metadata(
            media['id'],
            title=title,
            alt_text=alt_text,
            caption=description,
            description=description
        )
        return media['url']
