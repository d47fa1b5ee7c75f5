#!/usr/bin/env python3
"""
画像処理モジュールのテスト
"""
import io

import pytest
from PIL import Image

from wp_image_uploader.core.image_processor import (
    calculate_dimensions, create_preview, is_image_file, process_image
)
from wp_image_uploader.services.exceptions import ImageProcessingError


class TestCalculateDimensions:
    """サイズ計算のテスト"""

    def test_smaller_than_max_width_is_unchanged(self):
        """上限より小さい画像のサイズテスト"""
        assert calculate_dimensions(800, 600, 1920) == (800, 600)

    def test_equal_to_max_width_is_unchanged(self):
        """上限と同じ幅の画像のサイズテスト"""
        assert calculate_dimensions(1920, 1080, 1920) == (1920, 1080)

    def test_wider_image_is_scaled_keeping_ratio(self):
        """縦横比を維持した縮小テスト"""
        assert calculate_dimensions(4000, 3000, 1920) == (1920, 1440)

    def test_height_is_rounded(self):
        """高さの丸めテスト"""
        # 1000 * 100 / 300 = 333.33...
        assert calculate_dimensions(300, 1000, 100) == (100, 333)

    def test_height_never_zero(self):
        """高さが0にならないテスト"""
        assert calculate_dimensions(5000, 1, 100) == (100, 1)


class TestProcessImage:
    """リサイズと再エンコードのテスト"""

    def test_webp_conversion_resizes_to_max_width(self, make_image):
        """WebP変換とリサイズのテスト"""
        path = make_image('wide.jpg', size=(3000, 1500))

        result = process_image(path, convert_to_webp=True, quality=80, max_width=1200)

        assert result.mime_type == 'image/webp'
        assert (result.width, result.height) == (1200, 600)
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == 'WEBP'
            assert img.size == (1200, 600)

    def test_small_image_is_not_upscaled(self, make_image):
        """小さい画像を拡大しないテスト"""
        path = make_image('small.png', size=(300, 100), fmt='PNG')

        result = process_image(path, max_width=1920)

        assert (result.width, result.height) == (300, 100)
        assert result.size == len(result.data)

    def test_keeps_original_format_when_webp_disabled(self, make_image):
        """元形式維持テスト"""
        path = make_image('graphic.png', size=(500, 500), mode='RGBA', color=(0, 0, 255, 128), fmt='PNG')

        result = process_image(path, convert_to_webp=False, max_width=250)

        assert result.mime_type == 'image/png'
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == 'PNG'
            assert img.size == (250, 250)
            assert img.mode == 'RGBA'

    def test_jpeg_stays_jpeg_when_webp_disabled(self, make_image):
        """JPEG維持テスト"""
        path = make_image('photo.jpg', size=(640, 480))

        result = process_image(path, convert_to_webp=False, quality=70)

        assert result.mime_type == 'image/jpeg'
        with Image.open(io.BytesIO(result.data)) as img:
            assert img.format == 'JPEG'

    def test_webp_keeps_transparency(self, make_image):
        """WebPの透過維持テスト"""
        path = make_image('logo.png', size=(64, 64), mode='RGBA', color=(10, 20, 30, 0), fmt='PNG')

        result = process_image(path, convert_to_webp=True)

        with Image.open(io.BytesIO(result.data)) as img:
            assert img.mode == 'RGBA'

    def test_unsupported_original_format_falls_back_to_jpeg(self, make_image):
        """非対応形式のJPEGフォールバックテスト"""
        path = make_image('scan.ppm', size=(120, 80), fmt='PPM')

        result = process_image(path, convert_to_webp=False)

        assert result.mime_type == 'image/jpeg'

    def test_exif_orientation_is_applied(self, tmp_path):
        """EXIF回転の適用テスト"""
        path = tmp_path / 'rotated.jpg'
        exif = Image.Exif()
        exif[0x0112] = 6  # 90度回転
        Image.new('RGB', (400, 200), (0, 128, 0)).save(path, exif=exif)

        result = process_image(path, convert_to_webp=True)

        assert (result.width, result.height) == (200, 400)

    def test_non_image_raises(self, tmp_path):
        """画像以外のファイルのテスト"""
        path = tmp_path / 'notes.jpg'
        path.write_text('not really an image')

        with pytest.raises(ImageProcessingError):
            process_image(path)

    def test_missing_file_raises(self, tmp_path):
        """存在しないファイルのテスト"""
        with pytest.raises(ImageProcessingError):
            process_image(tmp_path / 'missing.png')


class TestPreviewAndDetection:
    """プレビューと画像判定のテスト"""

    def test_create_preview_returns_data_url(self, make_image):
        """プレビュー生成テスト"""
        path = make_image('thumb.png', size=(10, 10), fmt='PNG')

        preview = create_preview(path)

        assert preview.startswith('data:image/png;base64,')

    @pytest.mark.parametrize('name,expected', [
        ('a.jpg', True),
        ('b.PNG', True),
        ('c.webp', True),
        ('d.gif', True),
        ('e.txt', False),
        ('f.pdf', False),
        ('noext', False),
    ])
    def test_is_image_file(self, name, expected):
        """画像ファイル判定テスト"""
        assert is_image_file(name) is expected
