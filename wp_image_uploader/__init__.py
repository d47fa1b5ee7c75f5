"""
WordPress画像アップローダー

ディレクトリ構造:
- api/: 外部API関連 (OpenAI, WordPress)
- core/: コアロジック (画像処理, コマンド, アップロード管理, 設定画面)
- security/: 入力検証
- services/: システムサービス (例外, リソース管理)
- utils/: ユーティリティ関数と定数
- config/: 設定管理
"""

__version__ = "0.1.0"
