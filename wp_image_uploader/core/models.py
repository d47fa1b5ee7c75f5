"""
タスク・リクエストのデータモデル
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from ..utils.utils import generate_id, replace_extension


class TaskStatus(str, Enum):
    """画像タスクの状態"""
    PENDING = "pending"
    PROCESSING = "processing"
    ANALYZING = "analyzing"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class TaskResult:
    """アップロード結果"""
    url: str
    original_size: int
    processed_size: int


@dataclass
class ImageTask:
    """アップロードキュー内の1画像"""
    path: Path
    id: str = field(default_factory=generate_id)
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    error: Optional[str] = None
    preview: Optional[str] = None
    result: Optional[TaskResult] = None

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def request_filename(self) -> str:
        """解析・アップロード依頼に使うファイル名（拡張子は .webp）"""
        return replace_extension(self.filename, '.webp')

    def matches_filename(self, filename: str) -> bool:
        return filename in (self.filename, self.request_filename)

    @property
    def is_finished(self) -> bool:
        return self.status in (TaskStatus.COMPLETED, TaskStatus.ERROR)


@dataclass
class ImageMetadata:
    """処理済み画像のメタデータ"""
    filename: str
    mime_type: str
    original_size: int
    processed_size: int
    width: int
    height: int


@dataclass
class ProcessImageRequest:
    """画像の解析・アップロード依頼"""
    image_data: str  # base64
    metadata: ImageMetadata
    target_site_id: str


@dataclass
class TaskUpdate:
    """task-update イベントのペイロード"""
    filename: str
    status: TaskStatus
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'filename': self.filename,
            'status': self.status.value,
            'error': self.error
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TaskUpdate':
        return cls(
            filename=data['filename'],
            status=TaskStatus(data['status']),
            error=data.get('error')
        )
