"""Tests for R2MediaStorage with a mocked boto3 client."""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError

from adapter.cloudflare.media_storage import R2MediaStorage, guess_content_type
from domain.model.asset import extract_asset_id
from domain.model.errors import MediaStorageError, UploadFailedError
from services.media_service import discard_asset, upload_with_retry
from utils.settings import MediaSettings

SETTINGS = MediaSettings(
    bucket_name='media-bucket',
    account_id='acct',
    access_key_id='key',
    secret_access_key='secret',
    public_url='https://cdn.example.test/',
    key_prefix='media',
)


def client_error(operation: str) -> ClientError:
    return ClientError({'Error': {'Code': '500', 'Message': 'Internal'}}, operation)


class R2TestCase(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / 'Avatar.PNG'
        self.path.write_bytes(b'png')
        self.client = MagicMock()
        self.storage = R2MediaStorage(SETTINGS, client=self.client)

    def tearDown(self):
        self._tmp.cleanup()


class TestUpload(R2TestCase):

    def test_upload_returns_public_reference(self):
        ref = self.storage.upload(self.path)

        filename, bucket, key = self.client.upload_file.call_args[0]
        self.assertEqual(filename, str(self.path))
        self.assertEqual(bucket, 'media-bucket')
        self.assertEqual(key, f'media/{ref.asset_id}.png')
        self.assertEqual(ref.url, f'https://cdn.example.test/media/{ref.asset_id}.png')
        self.assertEqual(
            self.client.upload_file.call_args[1]['ExtraArgs'],
            {'ContentType': 'image/png'},
        )

    def test_url_resolves_back_to_asset_id(self):
        ref = self.storage.upload(self.path)
        self.assertEqual(extract_asset_id(ref.url), ref.asset_id)

    def test_each_upload_is_a_new_asset(self):
        self.assertNotEqual(self.storage.upload(self.path).asset_id, self.storage.upload(self.path).asset_id)

    def test_rejected_upload_becomes_media_storage_error(self):
        """upload_file wraps ClientError (403, 5xx) in S3UploadFailedError."""
        self.client.upload_file.side_effect = S3UploadFailedError(
            "Failed to upload Avatar.PNG to media-bucket/media/x.png: An error occurred (AccessDenied)"
        )

        with self.assertRaises(MediaStorageError):
            self.storage.upload(self.path)

    def test_rejected_upload_is_retried_then_reported(self):
        self.client.upload_file.side_effect = S3UploadFailedError("An error occurred (SlowDown)")

        with self.assertRaises(UploadFailedError):
            upload_with_retry(self.storage, self.path, max_attempts=3)

        self.assertEqual(self.client.upload_file.call_count, 3)
        self.assertFalse(self.path.exists())

    def test_rejected_then_accepted(self):
        self.client.upload_file.side_effect = [S3UploadFailedError("An error occurred (InternalError)"), None]

        ref = upload_with_retry(self.storage, self.path, max_attempts=3)

        self.assertEqual(self.client.upload_file.call_count, 2)
        self.assertTrue(ref.url.endswith(f"{ref.asset_id}.png"))

    def test_empty_prefix(self):
        storage = R2MediaStorage(MediaSettings(bucket_name='b', public_url='https://cdn', key_prefix=''),
                                 client=self.client)
        ref = storage.upload(self.path)
        self.assertEqual(ref.url, f'https://cdn/{ref.asset_id}.png')


class TestDelete(R2TestCase):

    def test_delete_removes_all_objects_for_asset(self):
        paginator = MagicMock()
        paginator.paginate.return_value = [{'Contents': [{'Key': 'media/abc.png'}]}]
        self.client.get_paginator.return_value = paginator

        self.storage.delete('abc')

        paginator.paginate.assert_called_once_with(Bucket='media-bucket', Prefix='media/abc')
        self.client.delete_object.assert_called_once_with(Bucket='media-bucket', Key='media/abc.png')

    def test_delete_leaves_assets_sharing_the_id_prefix(self):
        """A short id from a foreign URL must not match other users' objects."""
        paginator = MagicMock()
        paginator.paginate.return_value = [{'Contents': [
            {'Key': 'media/a1b2c3d4e5f60718293a4b5c6d7e8f90.png'},
            {'Key': 'media/a9f08e7d6c5b4a39281706f5e4d3c2d1.jpg'},
        ]}]
        self.client.get_paginator.return_value = paginator

        self.assertTrue(discard_asset(self.storage, 'https://res.example.com/image/upload/v1/a.png'))

        paginator.paginate.assert_called_once_with(Bucket='media-bucket', Prefix='media/a')
        self.client.delete_object.assert_not_called()

    def test_delete_matches_exact_key_only(self):
        paginator = MagicMock()
        paginator.paginate.return_value = [{'Contents': [
            {'Key': 'media/abc'},
            {'Key': 'media/abc.webp'},
            {'Key': 'media/abcd.png'},
            {'Key': 'media/abc.tar.gz'},
            {'Key': 'media/abc/nested.png'},
        ]}]
        self.client.get_paginator.return_value = paginator

        self.storage.delete('abc')

        deleted = [c[1]['Key'] for c in self.client.delete_object.call_args_list]
        self.assertEqual(deleted, ['media/abc', 'media/abc.webp'])

    def test_delete_missing_asset_is_noop(self):
        paginator = MagicMock()
        paginator.paginate.return_value = [{}]
        self.client.get_paginator.return_value = paginator

        self.storage.delete('gone')

        self.client.delete_object.assert_not_called()

    def test_delete_error(self):
        paginator = MagicMock()
        paginator.paginate.return_value = [{'Contents': [{'Key': 'media/abc.png'}]}]
        self.client.get_paginator.return_value = paginator
        self.client.delete_object.side_effect = client_error('DeleteObject')

        with self.assertRaises(MediaStorageError):
            self.storage.delete('abc')


class TestClientConstruction(unittest.TestCase):

    @patch('adapter.cloudflare.media_storage.boto3')
    def test_client_is_built_lazily(self, mock_boto3):
        storage = R2MediaStorage(SETTINGS)
        mock_boto3.client.assert_not_called()

        storage.client
        storage.client

        mock_boto3.client.assert_called_once()
        self.assertEqual(mock_boto3.client.call_args[1]['endpoint_url'], 'https://acct.r2.cloudflarestorage.com')


class TestGuessContentType(unittest.TestCase):

    def test_known_and_unknown(self):
        self.assertEqual(guess_content_type(Path('a.JPG')), 'image/jpeg')
        self.assertEqual(guess_content_type(Path('a.bin')), 'application/octet-stream')


if __name__ == '__main__':
    unittest.main()
