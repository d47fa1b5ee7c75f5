"""
カスタム例外クラス定義
"""


class ImageUploaderError(Exception):
    """画像アップローダーの基底例外クラス"""
    pass


class ConfigurationError(ImageUploaderError):
    """設定関連のエラー"""
    pass


class APIError(ImageUploaderError):
    """API関連のエラー"""
    pass


class OpenAIAPIError(APIError):
    """OpenAI API関連のエラー"""
    pass


class WordPressAPIError(APIError):
    """WordPress API関連のエラー"""
    pass


class ImageProcessingError(ImageUploaderError):
    """画像処理関連のエラー"""
    pass


class CommandError(ImageUploaderError):
    """コマンド呼び出しのエラー"""

    def __init__(self, command: str, message: str):
        super().__init__(message)
        self.command = command
        self.message = message


class FileOperationError(ImageUploaderError):
    """ファイル操作関連のエラー"""
    pass
