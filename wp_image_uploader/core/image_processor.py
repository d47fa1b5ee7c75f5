"""
画像処理 - 幅上限でのリサイズとWebP/元形式での再エンコード
"""
import base64
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from ..services.exceptions import ImageProcessingError
from ..utils.constants import ImageDefaults

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, BinaryIO]

# 元形式のまま再エンコードできる形式
REENCODABLE_FORMATS = {'JPEG', 'PNG', 'WEBP', 'GIF', 'BMP', 'TIFF'}
ALPHA_FORMATS = {'PNG', 'WEBP', 'GIF', 'TIFF'}
FORMAT_MIME_TYPES = {
    'JPEG': 'image/jpeg',
    'PNG': 'image/png',
    'WEBP': 'image/webp',
    'GIF': 'image/gif',
    'BMP': 'image/bmp',
    'TIFF': 'image/tiff',
}

mimetypes.add_type('image/webp', '.webp')


@dataclass
class ProcessedImage:
    """処理済み画像"""
    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.data)


def calculate_dimensions(original_width: int, original_height: int, max_width: int) -> Tuple[int, int]:
    """
    幅の上限に合わせたサイズを計算（縦横比は維持、拡大はしない）
    
    Args:
        original_width: 元の幅
        original_height: 元の高さ
        max_width: 幅の上限
    
    Returns:
        (幅, 高さ)
    """
    if original_width <= max_width:
        return original_width, original_height
    
    ratio = max_width / original_width
    return max_width, max(1, round(original_height * ratio))


def prepare_image(img: Image.Image, output_format: str) -> Image.Image:
    """出力形式に応じてアルファチャンネルを処理"""
    supports_alpha = output_format.upper() in ALPHA_FORMATS
    has_alpha = 'A' in img.getbands() or (img.mode == 'P' and 'transparency' in img.info)
    
    # アルファ非対応形式は白背景に合成
    if has_alpha and not supports_alpha:
        rgba = img.convert('RGBA')
        background = Image.new('RGB', rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    
    target_mode = 'RGBA' if has_alpha and supports_alpha else 'RGB'
    if output_format.upper() == 'JPEG':
        return img if img.mode in ('L', 'RGB', 'CMYK') else img.convert('RGB')
    if output_format.upper() == 'WEBP':
        return img if img.mode in ('RGB', 'RGBA') else img.convert(target_mode)
    if img.mode in ('P', 'LA', 'CMYK', 'I;16', 'I', 'F'):
        return img.convert(target_mode)

    return img


def process_image(
    source: ImageSource,
    convert_to_webp: bool = ImageDefaults.CONVERT_TO_WEBP,
    quality: int = ImageDefaults.QUALITY,
    max_width: int = ImageDefaults.MAX_WIDTH
) -> ProcessedImage:
    """
    画像を読み込み、幅上限でリサイズして再エンコード
    
    Args:
        source: 画像ファイルのパスまたはファイルオブジェクト
        convert_to_webp: WebPに変換するか（Falseなら元形式、不明ならJPEG）
        quality: 圧縮品質 (1-100)
        max_width: 幅の上限
    
    Returns:
        処理済み画像
    
    Raises:
        ImageProcessingError: 画像として読み込めない・エンコードできない場合
    """
    try:
        with Image.open(source) as opened:
            original_format = (opened.format or '').upper()
            img = ImageOps.exif_transpose(opened)
            img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageProcessingError(f"Failed to load image: {e}")
    
    width, height = calculate_dimensions(img.width, img.height, max_width)
    if (width, height) != img.size:
        img = img.resize((width, height), Image.Resampling.LANCZOS)
    
    if convert_to_webp:
        output_format = 'WEBP'
    elif original_format in REENCODABLE_FORMATS:
        output_format = original_format
    else:
        output_format = 'JPEG'
    
    img = prepare_image(img, output_format)
    
    save_kwargs = {'format': output_format}
    if output_format in ('WEBP', 'JPEG'):
        save_kwargs['quality'] = quality
    if output_format in ('JPEG', 'PNG'):
        save_kwargs['optimize'] = True
    
    buffer = io.BytesIO()
    try:
        img.save(buffer, **save_kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise ImageProcessingError(f"Failed to encode image as {output_format}: {e}")
    
    mime_type = FORMAT_MIME_TYPES[output_format]
    logger.debug(f"Processed image: {width}x{height} {mime_type} ({buffer.tell()} bytes)")
    return ProcessedImage(data=buffer.getvalue(), mime_type=mime_type, width=width, height=height)


def guess_mime_type(path: Union[str, Path]) -> str:
    """ファイル名からMIMEタイプを推定"""
    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type or 'application/octet-stream'


def is_image_file(path: Union[str, Path]) -> bool:
    """ファイル名から画像ファイルかどうかを判定"""
    return guess_mime_type(path).startswith('image/')


def create_preview(path: Union[str, Path]) -> str:
    """
    プレビュー用のdata URLを生成
    
    Raises:
        ImageProcessingError: ファイルが読めない場合
    """
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ImageProcessingError(f"Failed to read image: {e}")
    return f"data:{guess_mime_type(path)};base64,{base64.b64encode(data).decode('ascii')}"
