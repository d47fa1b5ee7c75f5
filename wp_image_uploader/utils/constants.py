"""
定数定義モジュール
"""
from typing import Final


class Constants:
    """システム定数定義"""
    
    # API関連
    API_TIMEOUT: Final[int] = 30
    MAX_RETRIES: Final[int] = 3
    RETRY_DELAY: Final[float] = 1.0
    
    # OpenAI関連
    OPENAI_DEFAULT_API_URL: Final[str] = 'https://api.openai.com/v1'
    OPENAI_VISION_MODEL: Final[str] = 'gpt-4o'
    OPENAI_MAX_TOKENS: Final[int] = 500
    
    # WordPress関連
    WP_API_VERSION: Final[str] = 'wp/v2'
    VALIDATION_IMAGE_NAME: Final[str] = 'test-validation.png'
    # 1x1 透明PNG
    VALIDATION_IMAGE_BASE64: Final[str] = (
        'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk+M9QDwADhgGAWjR9awAAAABJRU5ErkJggg=='
    )
    
    # アップロード関連
    MAX_FILES_PER_BATCH: Final[int] = 50
    
    # 設定ファイル
    APP_NAME: Final[str] = 'wp-image-uploader'
    CONFIG_FILE_NAME: Final[str] = 'config.json'
    ENCRYPTION_KEY_FILE: Final[str] = '.encryption_key'
    CONFIG_DIR_ENV: Final[str] = 'WP_IMAGE_UPLOADER_CONFIG_DIR'
    ENCRYPTION_KEY_ENV: Final[str] = 'WP_IMAGE_UPLOADER_ENCRYPTION_KEY'
    
    # イベント
    TASK_UPDATE_EVENT: Final[str] = 'task-update'
    
    # ログ関連
    LOG_DATE_FORMAT: Final[str] = '%Y%m%d'
    LOG_FORMAT: Final[str] = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ImageDefaults:
    """画像最適化のデフォルト値"""
    
    CONVERT_TO_WEBP = True
    MAX_WIDTH = 1920
    QUALITY = 85
    
    MIN_QUALITY = 1
    MAX_QUALITY = 100
    MIN_WIDTH = 100
    MAX_WIDTH_LIMIT = 4000


class TaskProgress:
    """タスク状態ごとの進捗率"""
    
    PROCESSING_START = 10
    PROCESSING_DONE = 30
    ANALYZING = 50
    UPLOADING = 80
    COMPLETED = 100


class Messages:
    """画面表示メッセージ定数"""
    
    OPENAI_NOT_CONFIGURED = "先に設定で OpenAI を構成してください"
    NO_SITES_CONFIGURED = "先に設定で WordPress サイトを少なくとも1つ追加してください"
    SITE_NOT_FOUND = "選択したサイトが見つかりません"
    ENTER_API_KEY = "APIキーを入力してください"
    OPENAI_SAVED = "✓ OpenAI の検証と保存に成功しました！"
    OPENAI_INVALID = "OpenAI の検証に失敗しました"
    VALIDATION_ERROR = "検証エラー: {}"
    REQUIRED_FIELDS = "必須項目をすべて入力してください"
    VALIDATING_SITE = "WordPress サイトを検証しています..."
    SITE_INVALID = "WordPress の検証に失敗しました。認証情報を確認してください"
    SITE_SAVED = "✓ WordPress サイトの検証と保存に成功しました！"
    SITE_REMOVED = "サイトを削除しました！設定の保存を忘れないでください"
    CONFIG_SAVED = "設定を保存しました"
    SAVE_ERROR = "保存エラー: {}"
