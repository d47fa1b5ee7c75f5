#!/usr/bin/env python3
"""
WordPress画像アップローダー メインスクリプト
"""
import sys
from pathlib import Path

# プロジェクトルートをPythonパスに追加
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from wp_image_uploader.cli import main


if __name__ == "__main__":
    sys.exit(main())
