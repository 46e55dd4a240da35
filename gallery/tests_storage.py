"""
Unit Tests for Blob Storage
===========================
Tests cover:
- S3 object keys and URLs
- Gif thumbnails
- Translating boto errors into BlobStoreError
- Loading the configured store
"""

from datetime import date
from unittest import mock

from botocore.exceptions import ClientError
from django.test import SimpleTestCase, override_settings

from gallery.exceptions import BlobStoreError
from gallery.storage import S3BlobStore, build_object_key, get_blob_store
from gallery.testutils import InMemoryBlobStore, make_gif_bytes, make_image_bytes


@override_settings(
    AWS_STORAGE_BUCKET_NAME="portfolio",
    AWS_S3_ENDPOINT_URL="https://r2.example.com",
    AWS_S3_PUBLIC_BASE_URL="",
)
class S3BlobStoreTests(SimpleTestCase):
    """Tests for S3BlobStore with a mocked boto3 client."""

    def setUp(self):
        self.client = mock.Mock()
        self.store = S3BlobStore(client=self.client)

    def test_object_key_format(self):
        key = build_object_key("image", "nested/dir/photo.jpg", date=date(2024, 3, 9))
        self.assertEqual(key, "2024-03-09/image/photo.jpg")

    def test_image_upload(self):
        blob = self.store.store(make_image_bytes(), "image", "photo.jpg")

        self.client.put_object.assert_called_once()
        kwargs = self.client.put_object.call_args.kwargs
        self.assertEqual(kwargs["Bucket"], "portfolio")
        self.assertEqual(kwargs["ContentType"], "image/jpeg")
        self.assertTrue(kwargs["Key"].endswith("/image/photo.jpg"))
        self.assertEqual(blob.url, f"https://r2.example.com/portfolio/{kwargs['Key']}")
        self.assertIsNone(blob.thumbnail_url)

    def test_public_base_url(self):
        store = S3BlobStore(client=self.client, public_base_url="https://cdn.example.com/")
        blob = store.store(make_image_bytes(), "image", "photo.jpg")
        self.assertEqual(blob.url, f"https://cdn.example.com/{blob.key}")

    def test_gif_upload_adds_jpeg_thumbnail(self):
        blob = self.store.store(make_gif_bytes(), "gif", "loop.gif")

        self.assertEqual(self.client.put_object.call_count, 2)
        thumb_call = self.client.put_object.call_args_list[1].kwargs
        self.assertEqual(thumb_call["ContentType"], "image/jpeg")
        self.assertTrue(thumb_call["Key"].endswith("/gif/thumbnails/loop.jpg"))
        self.assertTrue(blob.thumbnail_url.endswith("/gif/thumbnails/loop.jpg"))

    def test_unreadable_gif_is_refused_before_upload(self):
        with self.assertRaises(BlobStoreError):
            self.store.store(b"definitely not a gif", "gif", "bad.gif")
        self.client.put_object.assert_not_called()

    def test_client_error_becomes_blob_store_error(self):
        self.client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        with self.assertRaises(BlobStoreError):
            self.store.store(make_image_bytes(), "image", "photo.jpg")

    @override_settings(GALLERY_BLOB_STORE="gallery.testutils.InMemoryBlobStore")
    def test_configured_store_is_loaded(self):
        self.assertIsInstance(get_blob_store(), InMemoryBlobStore)
