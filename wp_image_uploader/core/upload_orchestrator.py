"""
アップロードキュー管理 - 画像タスクを リサイズ → base64 → 解析・アップロード の順に処理
"""
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from ..config.config_manager import AppConfig
from ..services.exceptions import ImageProcessingError
from ..utils.constants import Constants, Messages, TaskProgress
from .bridge import Bridge, blob_to_base64
from .image_processor import create_preview, is_image_file, process_image
from .models import ImageMetadata, ImageTask, ProcessImageRequest, TaskResult, TaskStatus, TaskUpdate

logger = logging.getLogger(__name__)

# 通知された状態ごとの進捗率（それ以外は現状維持）
UPDATE_PROGRESS = {
    TaskStatus.COMPLETED: TaskProgress.COMPLETED,
    TaskStatus.UPLOADING: TaskProgress.UPLOADING,
    TaskStatus.ANALYZING: TaskProgress.ANALYZING,
}


class UploadOrchestrator:
    """画像タスクのリストと処理パイプラインを管理"""

    def __init__(
        self,
        bridge: Bridge,
        config: AppConfig,
        alert: Optional[Callable[[str], None]] = None,
        on_change: Optional[Callable[[ImageTask], None]] = None
    ):
        """
        Args:
            bridge: コマンドブリッジ
            config: 現在の設定
            alert: ユーザーへの通知関数
            on_change: タスク更新時のコールバック
        """
        self.bridge = bridge
        self.tasks: List[ImageTask] = []
        self.selected_site_id: Optional[str] = None
        self.alert = alert or (lambda message: logger.warning(message))
        self.on_change = on_change
        self.config = config
        self._unlisten = None
        self._active_task: Optional[ImageTask] = None

    @property
    def config(self) -> AppConfig:
        return self._config

    @config.setter
    def config(self, config: AppConfig) -> None:
        self._config = config
        self._select_default_site()

    def _select_default_site(self) -> None:
        if self._config.wordpress_sites and not self.selected_site_id:
            self.selected_site_id = self._config.wordpress_sites[0].id

    def start(self) -> None:
        """task-update の購読を開始"""
        if self._unlisten is None:
            self._unlisten = self.bridge.on_task_update(self.handle_task_update)

    def close(self) -> None:
        """購読を解除"""
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def select_site(self, site_id: str) -> None:
        """アップロード先サイトを選択"""
        self.selected_site_id = site_id

    def _notify(self, task: ImageTask) -> None:
        if self.on_change:
            self.on_change(task)

    def _update_task(
        self,
        task: ImageTask,
        status: TaskStatus,
        progress: int,
        error: Optional[str] = None
    ) -> None:
        task.status = status
        task.progress = progress
        task.error = error
        self._notify(task)

    def add_files(self, paths: Iterable[Union[str, Path]]) -> List[ImageTask]:
        """
        ファイルをキューに追加して順番に処理

        Args:
            paths: 画像ファイルのパス（最大50件まで採用、画像以外は除外）

        Returns:
            追加されたタスク
        """
        paths = [Path(p) for p in paths or []]
        if not paths:
            return []

        if self.config.openai is None:
            self.alert(Messages.OPENAI_NOT_CONFIGURED)
            return []

        if not self.config.wordpress_sites:
            self.alert(Messages.NO_SITES_CONFIGURED)
            return []

        new_tasks = []
        for path in paths[:Constants.MAX_FILES_PER_BATCH]:
            if not is_image_file(path):
                logger.info(f"Skipping non-image file: {path}")
                continue

            try:
                preview = create_preview(path)
            except ImageProcessingError as e:
                logger.warning(f"Preview failed for {path}: {e}")
                preview = None

            new_tasks.append(ImageTask(path=path, preview=preview))

        self.tasks.extend(new_tasks)
        for task in new_tasks:
            self._notify(task)

        for task in new_tasks:
            self.process_task(task)

        return new_tasks

    def process_task(self, task: ImageTask) -> None:
        """1タスクをパイプラインに通す（失敗はタスクの error 状態として記録）"""
        self._active_task = task
        try:
            self._update_task(task, TaskStatus.PROCESSING, TaskProgress.PROCESSING_START)

            site = self.config.find_site(self.selected_site_id) if self.selected_site_id else None
            if site is None:
                raise ImageProcessingError(Messages.SITE_NOT_FOUND)

            optimizer = self.config.image_optimizer
            processed = process_image(
                task.path,
                convert_to_webp=site.convert_to_webp if site.convert_to_webp is not None else optimizer.convert_to_webp,
                quality=site.quality if site.quality is not None else optimizer.quality,
                max_width=site.max_width if site.max_width is not None else optimizer.max_width
            )

            self._update_task(task, TaskStatus.PROCESSING, TaskProgress.PROCESSING_DONE)

            original_size = task.path.stat().st_size
            request = ProcessImageRequest(
                image_data=blob_to_base64(processed.data),
                metadata=ImageMetadata(
                    filename=task.request_filename,
                    mime_type=processed.mime_type,
                    original_size=original_size,
                    processed_size=processed.size,
                    width=processed.width,
                    height=processed.height
                ),
                target_site_id=site.id
            )
            media_url = self.bridge.process_image(request)

            task.result = TaskResult(
                url=media_url,
                original_size=original_size,
                processed_size=processed.size
            )
            self._update_task(task, TaskStatus.COMPLETED, TaskProgress.COMPLETED)
            logger.info(f"Task completed: {task.filename} -> {media_url}")

        except Exception as e:
            logger.error(f"Task failed: {task.filename}: {e}")
            self._update_task(task, TaskStatus.ERROR, 0, str(e))
        finally:
            self._active_task = None

    def handle_task_update(self, update: TaskUpdate) -> None:
        """バックエンドからの状態通知をタスクに反映"""
        # 処理中のタスクがあればそれだけを対象にする
        candidates = [self._active_task] if self._active_task is not None else self.tasks
        for task in candidates:
            if task.is_finished or not task.matches_filename(update.filename):
                continue
            task.status = update.status
            task.error = update.error
            task.progress = UPDATE_PROGRESS.get(update.status, task.progress)
            self._notify(task)

    def remove_task(self, task_id: str) -> None:
        """タスクを一覧から削除"""
        self.tasks = [task for task in self.tasks if task.id != task_id]

    def clear_completed(self) -> None:
        """完了したタスクを一覧から削除"""
        self.tasks = [task for task in self.tasks if task.status != TaskStatus.COMPLETED]
