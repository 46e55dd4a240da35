"""
Unit Tests for Content Creation and Resolution
==============================================
Tests cover:
- Dispatch by kind tag
- Text and code validation
- Image and gif ingestion through the blob store
- Upload failure producing no content
- Duplicate image detection
- Resolving stored content into items
- EXIF extraction
"""

from datetime import datetime, timezone as dt_timezone

from django.test import TestCase
from PIL import Image

from gallery import services
from gallery.content import (
    CodeData,
    CodePayload,
    GifData,
    GifPayload,
    ImageData,
    ImagePayload,
    TextData,
    TextPayload,
    create_content,
    file_identifier_for,
    to_item,
)
from gallery.exceptions import ConfigurationError, ConflictError, NotFoundError, ValidationError
from gallery.metadata_extractor import extract_image_metadata, format_shutter_speed
from gallery.models import CollectionContent, Content, ImageContent
from gallery.testutils import InMemoryBlobStore, make_gif_bytes, make_image_bytes


class ContentDispatchTests(TestCase):
    """Tests for create_content() dispatch and validation."""

    # ===================
    # Dispatch
    # ===================

    def test_unknown_kind_is_a_configuration_error(self):
        with self.assertRaises(ConfigurationError):
            create_content("video", TextPayload(body="hi"))

    def test_payload_must_match_kind(self):
        with self.assertRaises(ConfigurationError):
            create_content("code", TextPayload(body="print(1)"))

    def test_creates_text(self):
        content = create_content("text", TextPayload(body="Hello", format="markdown"))

        self.assertEqual(content.kind, "text")
        self.assertEqual(content.text.body, "Hello")
        self.assertEqual(content.text.format, "markdown")

    def test_creates_code(self):
        content = create_content(
            "code", CodePayload(body="print('hi')", language="python", filename="hi.py")
        )
        self.assertEqual(content.code.language, "python")
        self.assertEqual(content.code.filename, "hi.py")

    # ===================
    # Validation
    # ===================

    def test_blank_text_is_rejected(self):
        for body in ["", "   \n\t", None]:
            with self.assertRaises(ValidationError) as ctx:
                create_content("text", TextPayload(body=body))
            self.assertEqual(ctx.exception.field, "body")
        self.assertEqual(Content.objects.count(), 0)

    def test_text_size_limit(self):
        create_content("text", TextPayload(body="a" * 10000))
        with self.assertRaises(ValidationError) as ctx:
            create_content("text", TextPayload(body="a" * 10001))
        self.assertEqual(ctx.exception.field, "body")

    def test_code_size_limits(self):
        with self.assertRaises(ValidationError):
            create_content("code", CodePayload(body="x" * 50001, language="py"))
        with self.assertRaises(ValidationError) as ctx:
            create_content("code", CodePayload(body="x = 1", language="l" * 51))
        self.assertEqual(ctx.exception.field, "language")
        with self.assertRaises(ValidationError) as ctx:
            create_content("code", CodePayload(body="x = 1", language="py", filename="f" * 256))
        self.assertEqual(ctx.exception.field, "filename")

    def test_blank_code_and_language_are_rejected(self):
        with self.assertRaises(ValidationError):
            create_content("code", CodePayload(body="  ", language="py"))
        with self.assertRaises(ValidationError) as ctx:
            create_content("code", CodePayload(body="x = 1", language=" "))
        self.assertEqual(ctx.exception.field, "language")

    def test_description_limit(self):
        with self.assertRaises(ValidationError) as ctx:
            create_content("text", TextPayload(body="ok", description="d" * 501))
        self.assertEqual(ctx.exception.field, "description")

    def test_unknown_text_format(self):
        with self.assertRaises(ValidationError) as ctx:
            create_content("text", TextPayload(body="ok", format="rtf"))
        self.assertEqual(ctx.exception.field, "format")


class MediaIngestionTests(TestCase):
    """Tests for image and gif ingestion."""

    def setUp(self):
        self.store = InMemoryBlobStore()

    def test_image_is_stored_then_recorded(self):
        content = create_content(
            "image",
            ImagePayload(data=make_image_bytes(size=(64, 48)), filename="beach.jpg", author="Ann"),
            blob_store=self.store,
        )

        image = content.image
        self.assertEqual(len(self.store.objects), 1)
        self.assertTrue(image.image_url_web.startswith("https://cdn.example.com/"))
        self.assertTrue(image.image_url_web.endswith("/image/beach.jpg"))
        self.assertEqual((image.width, image.height), (64, 48))
        self.assertEqual(image.author, "Ann")
        self.assertEqual(image.title, "beach.jpg")
        self.assertEqual(image.file_identifier, file_identifier_for("beach.jpg"))

    def test_upload_failure_creates_nothing(self):
        result = create_content(
            "image",
            ImagePayload(data=make_image_bytes(), filename="lost.jpg"),
            blob_store=InMemoryBlobStore(fail=True),
        )
        self.assertIsNone(result)
        self.assertEqual(Content.objects.count(), 0)
        self.assertEqual(ImageContent.objects.count(), 0)

    def test_invalid_fields_are_rejected_before_upload(self):
        with self.assertRaises(ValidationError) as ctx:
            create_content(
                "image",
                ImagePayload(data=make_image_bytes(), filename="x.jpg", rating=9),
                blob_store=self.store,
            )
        self.assertEqual(ctx.exception.field, "rating")
        self.assertEqual(self.store.objects, {})

    def test_empty_image_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_content("image", ImagePayload(data=b"", filename="x.jpg"), blob_store=self.store)

    def test_same_file_same_day_is_not_uploaded_twice(self):
        payload = ImagePayload(data=make_image_bytes(), filename="dup.jpg")
        first = create_content("image", payload, blob_store=self.store)
        second = create_content("image", payload, blob_store=self.store)

        self.assertEqual(first.pk, second.pk)
        self.assertEqual(len(self.store.objects), 1)

    def test_explicit_metadata_wins_over_exif(self):
        content = create_content(
            "image",
            ImagePayload(
                data=make_image_bytes(),
                filename="lens.jpg",
                metadata={"lens": "Summicron 35", "iso": 400},
            ),
            blob_store=self.store,
        )
        self.assertEqual(content.image.lens, "Summicron 35")
        self.assertEqual(content.image.iso, 400)

    def test_metadata_limited_to_camera_fields(self):
        """Keys that are not camera fields are refused before any upload."""
        for key in ("title", "rating", "exposure_mode"):
            with self.assertRaises(ValidationError) as ctx:
                create_content(
                    "image",
                    ImagePayload(
                        data=make_image_bytes(), filename="meta.jpg", metadata={key: "T"}
                    ),
                    blob_store=self.store,
                )
            self.assertEqual(ctx.exception.field, key)
        self.assertEqual(self.store.objects, {})
        self.assertFalse(Content.objects.exists())

    def test_gif_gets_thumbnail(self):
        content = create_content(
            "gif",
            GifPayload(data=make_gif_bytes(size=(32, 20)), filename="spin.gif", title="Spin"),
            blob_store=self.store,
        )
        gif = content.gif
        self.assertTrue(gif.gif_url.endswith("/gif/spin.gif"))
        self.assertTrue(gif.thumbnail_url)
        self.assertEqual((gif.width, gif.height), (32, 20))
        self.assertEqual(gif.title, "Spin")

    def test_gif_upload_failure_creates_nothing(self):
        result = create_content(
            "gif",
            GifPayload(data=make_gif_bytes(), filename="spin.gif"),
            blob_store=InMemoryBlobStore(fail=True),
        )
        self.assertIsNone(result)
        self.assertEqual(Content.objects.count(), 0)


class AddToCollectionTests(TestCase):
    """Tests for the add_* helpers on a collection."""

    def setUp(self):
        self.collection = services.create_collection("portfolio", "Landscapes")
        self.store = InMemoryBlobStore()

    def test_added_items_are_appended_in_order(self):
        first = services.add_text(self.collection.pk, TextPayload(body="Intro"))
        second = services.add_code(self.collection.pk, CodePayload(body="x = 1", language="py"))
        third = services.add_image(
            self.collection.pk,
            ImagePayload(data=make_image_bytes(), filename="a.jpg"),
            blob_store=self.store,
        )

        links = list(services.list_ordered(self.collection.pk))
        self.assertEqual([link.content_id for link in links], [first.pk, second.pk, third.pk])
        self.assertEqual([link.order_index for link in links], [0, 1, 2])

        self.collection.refresh_from_db()
        self.assertEqual(self.collection.total_content, 3)

    def test_first_image_becomes_cover(self):
        services.add_text(self.collection.pk, TextPayload(body="Intro"))
        image = services.add_image(
            self.collection.pk,
            ImagePayload(data=make_image_bytes(), filename="cover.jpg"),
            blob_store=self.store,
        )
        services.add_image(
            self.collection.pk,
            ImagePayload(data=make_image_bytes(), filename="second.jpg"),
            blob_store=self.store,
        )

        self.collection.refresh_from_db()
        self.assertEqual(self.collection.cover_image_id, image.pk)

    def test_failed_upload_adds_nothing(self):
        result = services.add_gif(
            self.collection.pk,
            GifPayload(data=make_gif_bytes(), filename="x.gif"),
            blob_store=InMemoryBlobStore(fail=True),
        )
        self.assertIsNone(result)
        self.assertEqual(CollectionContent.objects.count(), 0)

    def test_missing_collection_fails_before_upload(self):
        with self.assertRaises(NotFoundError):
            services.add_image(
                999999,
                ImagePayload(data=make_image_bytes(), filename="x.jpg"),
                blob_store=self.store,
            )
        self.assertEqual(self.store.objects, {})

    def test_placement_options_are_passed_through(self):
        content = services.add_text(
            self.collection.pk, TextPayload(body="Hidden"), visible=False, caption="Note"
        )
        link = CollectionContent.objects.get(content=content)
        self.assertFalse(link.visible)
        self.assertEqual(link.caption, "Note")

    def test_delete_content_requires_no_placements(self):
        content = services.add_text(self.collection.pk, TextPayload(body="Keep me"))
        with self.assertRaises(ConflictError):
            services.delete_content(content.pk)

        services.remove_content(self.collection.pk, content.pk)
        services.delete_content(content.pk)
        self.assertFalse(Content.objects.filter(pk=content.pk).exists())


class ContentResolutionTests(TestCase):
    """Tests for to_item()."""

    def test_each_kind_resolves_to_its_data(self):
        store = InMemoryBlobStore()
        cases = [
            (create_content("text", TextPayload(body="T")), TextData),
            (create_content("code", CodePayload(body="c", language="go")), CodeData),
            (
                create_content(
                    "image", ImagePayload(data=make_image_bytes(), filename="i.jpg"), blob_store=store
                ),
                ImageData,
            ),
            (
                create_content(
                    "gif", GifPayload(data=make_gif_bytes(), filename="g.gif"), blob_store=store
                ),
                GifData,
            ),
        ]
        for content, data_type in cases:
            fresh = Content.objects.with_variants().get(pk=content.pk)
            item = to_item(fresh)
            self.assertIsInstance(item.data, data_type)
            self.assertEqual(item.kind, content.kind)
            self.assertIsNone(item.order_index)

    def test_placement_caption_overrides_content_caption(self):
        collection = services.create_collection("blog", "Captions")
        content = services.add_text(
            collection.pk, TextPayload(body="Body", caption="Original"), caption="Override"
        )
        link = CollectionContent.objects.get(content=content)

        item = to_item(link.content, link)
        self.assertEqual(item.caption, "Override")
        self.assertEqual(item.order_index, 0)
        self.assertTrue(item.visible)

        services.update_placement(collection.pk, content.pk, caption="")
        link.refresh_from_db()
        self.assertEqual(to_item(link.content, link).caption, "Original")

    def test_unknown_stored_kind_is_a_configuration_error(self):
        content = Content.objects.create(kind="hologram")
        with self.assertRaises(ConfigurationError):
            to_item(content)


class MetadataExtractorTests(TestCase):
    """Tests for EXIF extraction."""

    def test_reads_dimensions_and_camera(self):
        exif = Image.Exif()
        exif[0x010F] = "FUJIFILM"
        exif[0x0110] = "X-T4"
        exif[0x0132] = "2023:07:04 18:30:00"
        data = make_image_bytes(size=(120, 80), exif=exif.tobytes())

        metadata = extract_image_metadata(data, "exif.jpg")

        self.assertEqual(metadata["width"], 120)
        self.assertEqual(metadata["height"], 80)
        self.assertEqual(metadata["camera_make"], "FUJIFILM")
        self.assertEqual(metadata["camera_model"], "X-T4")
        self.assertEqual(
            metadata["captured_at"], datetime(2023, 7, 4, 18, 30, tzinfo=dt_timezone.utc)
        )

    def test_unreadable_bytes_yield_empty_metadata(self):
        self.assertEqual(extract_image_metadata(b"not an image", "junk.jpg"), {})

    def test_format_shutter_speed(self):
        self.assertEqual(format_shutter_speed((1, 250)), "1/250")
        self.assertEqual(format_shutter_speed(0.5), "1/2")
        self.assertEqual(format_shutter_speed(2.0), "2s")
