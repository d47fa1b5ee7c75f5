"""
WordPress画像アップローダー コマンドラインインターフェース
"""
import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config.config_manager import ConfigManager
from .core.bridge import Bridge, EventBus
from .core.commands import CommandBackend
from .core.models import ImageTask, TaskStatus
from .core.settings_controller import SettingsController
from .core.upload_orchestrator import UploadOrchestrator
from .services.exceptions import CommandError, ConfigurationError, ImageUploaderError
from .utils.utils import format_file_size, setup_logging

STATUS_ICONS = {
    TaskStatus.PENDING: "⏳",
    TaskStatus.PROCESSING: "🔧",
    TaskStatus.ANALYZING: "🤖",
    TaskStatus.UPLOADING: "📤",
    TaskStatus.COMPLETED: "✅",
    TaskStatus.ERROR: "❌",
}


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """コマンドライン引数を解析"""
    parser = argparse.ArgumentParser(
        prog='wp-image-uploader',
        description='画像をリサイズし、AIでメタデータを生成してWordPressにアップロード',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  wp-image-uploader upload photos/*.jpg           # 既定サイトにアップロード
  wp-image-uploader upload a.png --site SITE_ID   # サイトを指定
  wp-image-uploader openai set --key sk-...       # OpenAI APIキーを検証して保存
  wp-image-uploader site add --url https://example.com --username admin --password "xxxx xxxx"
  wp-image-uploader config show                   # 設定を表示（機密情報はマスク）
        """
    )

    parser.add_argument('--verbose', '-v', action='store_true', help='詳細ログを出力')
    parser.add_argument('--config-dir', help='設定ディレクトリ（既定: ユーザー設定ディレクトリ）')
    parser.add_argument('--log-dir', default='logs', help='ログディレクトリ (デフォルト: logs)')

    subparsers = parser.add_subparsers(dest='command', required=True)

    upload = subparsers.add_parser('upload', help='画像をアップロード')
    upload.add_argument('files', nargs='+', help='画像ファイル')
    upload.add_argument('--site', help='アップロード先サイトID（既定: 最初のサイト）')

    config = subparsers.add_parser('config', help='設定の表示')
    config.add_argument('action', choices=['show'])

    openai = subparsers.add_parser('openai', help='OpenAI 設定')
    openai_sub = openai.add_subparsers(dest='action', required=True)
    openai_set = openai_sub.add_parser('set', help='APIキーを検証して保存')
    openai_set.add_argument('--url', default=None, help='API URL (デフォルト: https://api.openai.com/v1)')
    openai_set.add_argument('--key', required=True, help='APIキー')

    site = subparsers.add_parser('site', help='WordPress サイト設定')
    site_sub = site.add_subparsers(dest='action', required=True)
    site_sub.add_parser('list', help='サイト一覧')

    site_add = site_sub.add_parser('add', help='サイトを検証して追加')
    site_edit = site_sub.add_parser('edit', help='サイトを検証して更新')
    site_edit.add_argument('site_id', help='サイトID')
    for sub, required in ((site_add, True), (site_edit, False)):
        sub.add_argument('--url', required=required, help='サイトURL')
        sub.add_argument('--username', required=required, help='ユーザー名')
        sub.add_argument('--password', required=required, help='アプリケーションパスワード')
        sub.add_argument('--context', help='サイトの文脈（AIプロンプト用）')
        sub.add_argument('--webp', dest='convert_to_webp', action='store_true', default=None,
                         help='WebPに変換')
        sub.add_argument('--no-webp', dest='convert_to_webp', action='store_false', default=None,
                         help='元の形式のまま再圧縮')
        sub.add_argument('--quality', type=int, help='圧縮品質 (1-100)')
        sub.add_argument('--max-width', type=int, help='最大幅 (100-4000)')

    site_remove = site_sub.add_parser('remove', help='サイトを削除')
    site_remove.add_argument('site_id', help='サイトID')

    subparsers.add_parser('test-connections', help='保存済み認証情報の接続テスト')

    return parser.parse_args(argv)


def build_bridge(config_dir: Optional[str] = None) -> Bridge:
    """イベントバスとバックエンドを接続したブリッジを作成"""
    events = EventBus()
    backend = CommandBackend(
        config_manager=ConfigManager(Path(config_dir) if config_dir else None),
        emit=events.emit
    )
    return Bridge(backend=backend, events=events)


def print_task(task: ImageTask) -> None:
    icon = STATUS_ICONS.get(task.status, "")
    line = f"{icon} [{task.progress:3d}%] {task.filename}: {task.status.value}"
    if task.error:
        line += f" - {task.error}"
    print(line)


def run_upload(bridge: Bridge, files: List[str], site_id: Optional[str]) -> bool:
    """画像をアップロードして結果を表示"""
    config = bridge.get_config()
    orchestrator = UploadOrchestrator(
        bridge,
        config,
        alert=lambda message: print(f"⚠️ {message}"),
        on_change=print_task
    )
    if site_id:
        orchestrator.select_site(site_id)

    with orchestrator:
        tasks = orchestrator.add_files(files)

    if not tasks:
        print("アップロード対象の画像がありません")
        return False

    print()
    for task in tasks:
        if task.status == TaskStatus.COMPLETED and task.result:
            print(
                f"✅ {task.filename}: {task.result.url} "
                f"({format_file_size(task.result.original_size)} → {format_file_size(task.result.processed_size)})"
            )
        else:
            print(f"❌ {task.filename}: {task.error}")

    return all(task.status == TaskStatus.COMPLETED for task in tasks)


def run_openai_set(settings: SettingsController, url: Optional[str], key: str) -> bool:
    if url:
        settings.openai_url = url
    settings.openai_key = key
    ok = settings.validate_openai()
    print(settings.message)
    return ok


def run_site_add(settings: SettingsController, args: argparse.Namespace) -> bool:
    site = settings.add_site()
    site.site_url = args.url
    site.username = args.username
    site.app_password = args.password
    site.context = args.context or ""
    if args.convert_to_webp is not None:
        site.convert_to_webp = args.convert_to_webp
    if args.quality is not None:
        site.quality = args.quality
    if args.max_width is not None:
        site.max_width = args.max_width

    ok = settings.save_new_site()
    print(settings.message)
    if ok:
        print(f"サイトID: {site.id}")
    return ok


def run_site_edit(settings: SettingsController, args: argparse.Namespace) -> bool:
    site = settings.edit_site(args.site_id)
    if site is None:
        print(f"サイトが見つかりません: {args.site_id}")
        return False

    for attr, value in (
        ('site_url', args.url),
        ('username', args.username),
        ('app_password', args.password),
        ('context', args.context),
        ('convert_to_webp', args.convert_to_webp),
        ('quality', args.quality),
        ('max_width', args.max_width),
    ):
        if value is not None:
            setattr(site, attr, value)

    ok = settings.save_edit()
    print(settings.message)
    return ok


def run_site_remove(settings: SettingsController, site_id: str) -> bool:
    if not any(site.id == site_id for site in settings.sites):
        print(f"サイトが見つかりません: {site_id}")
        return False
    settings.delete_site(site_id)
    return settings.save_config()


def run_site_list(settings: SettingsController) -> bool:
    if not settings.sites:
        print("サイトが登録されていません")
        return True
    for site in settings.sites:
        print(f"{site.id}  {site.site_url}  ({site.username})")
        if site.context:
            print(f"    context: {site.context}")
    return True


def run_test_connections(bridge: Bridge) -> bool:
    """保存済みのOpenAIと全サイトの接続テスト"""
    config = bridge.get_config()
    success = True

    if config.openai:
        try:
            ok = bridge.validate_openai(config.openai.api_url, config.openai.api_key)
        except CommandError as e:
            ok = False
            print(f"❌ OpenAI: {e}")
        else:
            print(f"{'✅' if ok else '❌'} OpenAI: {config.openai.api_url}")
        success = success and ok
    else:
        print("⚠️ OpenAI は未設定です")
        success = False

    for site in config.wordpress_sites:
        try:
            ok = bridge.validate_wordpress(site.site_url, site.username, site.app_password)
        except CommandError as e:
            ok = False
            print(f"❌ {site.site_url}: {e}")
        else:
            print(f"{'✅' if ok else '❌'} {site.site_url}")
        success = success and ok

    return success


def main(argv: Optional[List[str]] = None) -> int:
    """メイン処理"""
    load_dotenv()

    try:
        args = parse_arguments(argv)
        log_level = 'DEBUG' if args.verbose else os.getenv('LOG_LEVEL', 'INFO')
        setup_logging(log_level, args.log_dir)

        bridge = build_bridge(args.config_dir)

        if args.command == 'upload':
            success = run_upload(bridge, args.files, args.site)
        elif args.command == 'config':
            config_manager = bridge.backend.config_manager
            summary = config_manager.get_config_summary(bridge.get_config())
            print(json.dumps(summary, ensure_ascii=False, indent=2))
            success = True
        elif args.command == 'test-connections':
            success = run_test_connections(bridge)
        else:
            settings = SettingsController(bridge, bridge.get_config())
            if args.command == 'openai':
                success = run_openai_set(settings, args.url, args.key)
            elif args.action == 'list':
                success = run_site_list(settings)
            elif args.action == 'add':
                success = run_site_add(settings, args)
            elif args.action == 'edit':
                success = run_site_edit(settings, args)
            else:
                success = run_site_remove(settings, args.site_id)

        return 0 if success else 1

    except ConfigurationError as e:
        print(f"設定エラー: {e}", file=sys.stderr)
        return 1
    except CommandError as e:
        print(f"コマンドエラー ({e.command}): {e}", file=sys.stderr)
        return 1
    except ImageUploaderError as e:
        print(f"システムエラー: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\n処理が中断されました", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
