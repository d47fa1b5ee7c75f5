#!/usr/bin/env python3
"""
WordPress API クライアントのテスト
"""
from unittest.mock import MagicMock, call, patch

import pytest
import requests

from wp_image_uploader.api.wordpress_api import WordPressAPI
from wp_image_uploader.services.exceptions import WordPressAPIError

API = 'https://blog.example.com/wp-json/wp/v2'


def make_response(ok=True, status_code=200, json_data=None, text=''):
    response = MagicMock()
    response.ok = ok
    response.status_code = status_code
    response.text = text
    response.json.return_value = json_data
    return response


@pytest.fixture
def client():
    api = WordPressAPI('https://blog.example.com/', 'editor', 'abcd efgh', timeout=10)
    api._session = MagicMock()
    return api


class TestWordPressAPI:
    """WordPress REST API 呼び出しのテスト"""

    def test_api_url(self, client):
        """API URLテスト"""
        assert client.api_url == API

    def test_session_uses_basic_auth(self):
        """Basic 認証テスト"""
        api = WordPressAPI('https://blog.example.com', 'editor', 'secret')
        try:
            assert api.session.auth == ('editor', 'secret')
        finally:
            api.close_session()

    def test_connection_ok(self, client):
        """接続成功テスト"""
        client._session.get.return_value = make_response(json_data={'name': 'Editor'})

        assert client.test_connection() is True
        client._session.get.assert_called_once_with(f'{API}/users/me', timeout=10)

    def test_connection_unauthorized(self, client):
        """認証失敗テスト"""
        client._session.get.return_value = make_response(ok=False, status_code=401)
        assert client.test_connection() is False

    def test_connection_network_error(self, client):
        """接続時の通信エラーテスト"""
        client._session.get.side_effect = requests.exceptions.ConnectionError('dns')
        with pytest.raises(WordPressAPIError, match='Authentication failed'):
            client.test_connection()


class TestUploadMedia:
    """メディアアップロードのテスト"""

    def test_upload(self, client):
        """メディアアップロードテスト"""
        client._session.post.return_value = make_response(
            status_code=201,
            json_data={'id': 42, 'source_url': 'https://blog.example.com/wp-content/uploads/a.webp'}
        )

        media = client.upload_media(b'data', 'a.webp')

        assert media == {'id': 42, 'url': 'https://blog.example.com/wp-content/uploads/a.webp'}
        args, kwargs = client._session.post.call_args
        assert args[0] == f'{API}/media'
        assert kwargs['files'] == {'file': ('a.webp', b'data', 'image/webp')}

    def test_explicit_mime_type(self, client):
        """MIMEタイプ指定テスト"""
        client._session.post.return_value = make_response(json_data={'id': 1, 'source_url': 'u'})

        client.upload_media(b'data', 'a.webp', 'image/png')

        assert client._session.post.call_args[1]['files']['file'][2] == 'image/png'

    def test_upload_rejected(self, client):
        """アップロード拒否テスト"""
        client._session.post.return_value = make_response(ok=False, status_code=403, text='forbidden')
        with pytest.raises(WordPressAPIError, match='WordPress upload failed: forbidden'):
            client.upload_media(b'data', 'a.webp')

    def test_unparseable_response(self, client):
        """解析できない応答テスト"""
        client._session.post.return_value = make_response(json_data={'unexpected': True})
        with pytest.raises(WordPressAPIError, match='Failed to parse upload response'):
            client.upload_media(b'data', 'a.webp')


class TestMetadataAndDelete:
    """メタデータ更新・削除のテスト"""

    def test_update_metadata(self, client):
        """メタデータ更新テスト"""
        client._session.post.return_value = make_response()

        client.update_media_metadata(7, title='T', alt_text='A', caption='C', description='D')

        client._session.post.assert_called_once_with(
            f'{API}/media/7',
            json={'title': 'T', 'alt_text': 'A', 'caption': 'C', 'description': 'D'},
            timeout=10
        )

    @patch('wp_image_uploader.utils.utils.time.sleep')
    def test_update_metadata_retries(self, mock_sleep, client):
        """メタデータ更新のリトライテスト"""
        client._session.post.side_effect = [
            make_response(ok=False, status_code=500, text='busy'),
            make_response()
        ]

        client.update_media_metadata(7, title='T', alt_text='A', caption='C', description='D')

        assert client._session.post.call_count == 2
        mock_sleep.assert_called_once()

    @patch('wp_image_uploader.utils.utils.time.sleep')
    def test_update_metadata_gives_up(self, mock_sleep, client):
        """メタデータ更新のリトライ上限テスト"""
        client._session.post.return_value = make_response(ok=False, status_code=500, text='busy')

        with pytest.raises(WordPressAPIError, match='Metadata update failed'):
            client.update_media_metadata(7, title='T', alt_text='A', caption='C', description='D')

        assert client._session.post.call_count == 4

    def test_delete_media(self, client):
        """メディア削除テスト"""
        client._session.delete.return_value = make_response()

        assert client.delete_media(9) is True
        client._session.delete.assert_called_once_with(
            f'{API}/media/9', params={'force': 'true'}, timeout=10
        )


class TestValidateCredentials:
    """認証情報検証（テスト画像のアップロードと削除）のテスト"""

    def test_full_validation(self, client):
        """認証情報の検証テスト"""
        client._session.get.return_value = make_response(json_data={'name': 'Editor'})
        client._session.post.return_value = make_response(json_data={'id': 5, 'source_url': 'u'})
        client._session.delete.return_value = make_response()

        assert client.validate_credentials() is True

        filename, data, mime = client._session.post.call_args[1]['files']['file']
        assert filename == 'test-validation.png'
        assert mime == 'image/png'
        assert data.startswith(b'\x89PNG')
        client._session.delete.assert_called_once()

    def test_bad_credentials_skip_upload(self, client):
        """認証失敗時にアップロードしないテスト"""
        client._session.get.return_value = make_response(ok=False, status_code=401)

        assert client.validate_credentials() is False
        client._session.post.assert_not_called()

    def test_upload_permission_denied(self, client):
        """アップロード権限なしテスト"""
        client._session.get.return_value = make_response(json_data={'name': 'Subscriber'})
        client._session.post.return_value = make_response(ok=False, status_code=403, text='no')

        with pytest.raises(WordPressAPIError, match='Upload permission denied'):
            client.validate_credentials()
        client._session.delete.assert_not_called()


class TestUploadImageWithMetadata:
    """アップロードとメタデータ設定の一連処理のテスト"""

    def test_caption_uses_description(self, client):
        """キャプションに説明を使うテスト"""
        client._session.post.side_effect = [
            make_response(json_data={'id': 11, 'source_url': 'https://blog.example.com/x.webp'}),
            make_response()
        ]

        url = client.upload_image_with_metadata(
            b'img', 'x.webp', title='Title', alt_text='Alt', description='Desc'
        )

        assert url == 'https://blog.example.com/x.webp'
        metadata_call = client._session.post.call_args_list[1]
        assert metadata_call == call(
            f'{API}/media/11',
            json={'title': 'Title', 'alt_text': 'Alt', 'caption': 'Desc', 'description': 'Desc'},
            timeout=10
        )
