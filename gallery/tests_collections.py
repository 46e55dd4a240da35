"""
Unit Tests for Collection Lifecycle
===================================
Tests cover:
- Type defaults on creation
- Slug normalisation and unique suffixing
- Partial updates
- Choosing and clearing the cover image
- Password gate
- Deletion and listing
"""

from unittest import mock

from django.test import TestCase, override_settings

from gallery import services
from gallery.content import ImagePayload, TextPayload, create_content
from gallery.defaults import apply_type_defaults
from gallery.exceptions import ConflictError, NotFoundError, ValidationError
from gallery.models import Collection, CollectionContent, Content
from gallery.slugs import normalize_slug, resolve_unique_slug
from gallery.testutils import InMemoryBlobStore, make_image_bytes


class TypeDefaultPolicyTests(TestCase):
    """Tests for creation-time defaults keyed by collection type."""

    # ===================
    # Scenario A and friends
    # ===================

    def test_blog_without_page_size_gets_blog_default(self):
        """A blog created without page size or visibility gets 30 and visible."""
        collection = services.create_collection("blog", "Daily Moments")

        self.assertEqual(collection.content_per_page, 30)
        self.assertTrue(collection.visible)
        self.assertEqual(collection.display_mode, Collection.DisplayMode.CHRONOLOGICAL)

    def test_client_gallery_is_private_with_larger_pages(self):
        """Client galleries default to 50 per page and hidden."""
        collection = services.create_collection("client_gallery", "Smith Wedding")

        self.assertEqual(collection.content_per_page, 50)
        self.assertFalse(collection.visible)
        self.assertEqual(collection.display_mode, Collection.DisplayMode.ORDERED)

    def test_explicit_values_are_never_overwritten(self):
        """Caller-provided values, including False, survive the defaults."""
        collection = services.create_collection(
            "client_gallery", "Open Gallery", content_per_page=12, visible=True
        )
        self.assertEqual(collection.content_per_page, 12)
        self.assertTrue(collection.visible)

        blog = services.create_collection("blog", "Hidden Blog", visible=False)
        self.assertFalse(blog.visible)

    def test_apply_type_defaults_fills_only_missing(self):
        """None counts as missing; other values are kept."""
        values = apply_type_defaults("portfolio", {"visible": None, "priority": 2})

        self.assertTrue(values["visible"])
        self.assertEqual(values["priority"], 2)
        self.assertEqual(values["content_per_page"], 30)

    @override_settings(GALLERY_TYPE_DEFAULTS={"art_gallery": {"content_per_page": 24}})
    def test_settings_override_type_defaults(self):
        """GALLERY_TYPE_DEFAULTS adjusts a type's defaults."""
        collection = services.create_collection("art_gallery", "Ink Studies")
        self.assertEqual(collection.content_per_page, 24)

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_collection("scrapbook", "Anything")
        self.assertEqual(ctx.exception.field, "collection_type")


class SlugResolverTests(TestCase):
    """Tests for slug normalisation and uniqueness."""

    def test_normalize_slug(self):
        """Lowercases, strips punctuation and collapses separators."""
        self.assertEqual(normalize_slug("Sunset"), "sunset")
        self.assertEqual(normalize_slug("  Sunset at Big Sur!  "), "sunset-at-big-sur")
        self.assertEqual(normalize_slug("Rock -- & -- Roll"), "rock-roll")
        self.assertEqual(normalize_slug("--edge--"), "edge")

    def test_second_identical_title_gets_suffix(self):
        """Two collections titled Sunset become sunset and sunset-1."""
        first = services.create_collection("portfolio", "Sunset")
        second = services.create_collection("portfolio", "Sunset")

        self.assertEqual(first.slug, "sunset")
        self.assertEqual(second.slug, "sunset-1")

    def test_suffixes_are_sequential(self):
        slugs = [services.create_collection("blog", "Trip Notes").slug for _ in range(4)]
        self.assertEqual(slugs, ["trip-notes", "trip-notes-1", "trip-notes-2", "trip-notes-3"])

    def test_own_slug_is_not_a_collision(self):
        """Resolving a collection's current slug for itself returns it unchanged."""
        collection = services.create_collection("blog", "Road Trip")
        self.assertEqual(resolve_unique_slug("road-trip", exclude_id=collection.pk), "road-trip")
        self.assertEqual(resolve_unique_slug("road-trip"), "road-trip-1")

    @override_settings(GALLERY_SLUG_MAX_ATTEMPTS=2)
    def test_probe_gives_up_after_max_attempts(self):
        for _ in range(3):
            services.create_collection("blog", "Busy Slug")
        with self.assertRaises(ConflictError):
            resolve_unique_slug("busy-slug")

    def test_concurrent_slug_claim_is_retried(self):
        """If another writer grabs the probed slug first, the save probes again."""
        services.create_collection("portfolio", "Sunset")

        real_resolve = resolve_unique_slug
        calls = []

        def stale_then_real(candidate, exclude_id=None):
            calls.append(candidate)
            if len(calls) == 1:
                return "sunset"
            return real_resolve(candidate, exclude_id=exclude_id)

        with mock.patch(
            "gallery.services.collections.resolve_unique_slug", side_effect=stale_then_real
        ):
            second = services.create_collection("portfolio", "Sunset")

        self.assertEqual(second.slug, "sunset-1")
        self.assertEqual(len(calls), 2)

    def test_explicit_slug_is_normalized(self):
        collection = services.create_collection("blog", "Anything", slug="My Custom Slug")
        self.assertEqual(collection.slug, "my-custom-slug")

    def test_unusable_title_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_collection("blog", "!!!")
        self.assertEqual(ctx.exception.field, "title")

    def test_short_slug_blames_its_source(self):
        """A three character title that normalises to two characters names the title."""
        with self.assertRaises(ValidationError) as ctx:
            services.create_collection("blog", "Hi!")
        self.assertEqual(ctx.exception.field, "title")

        with self.assertRaises(ValidationError) as ctx:
            services.create_collection("blog", "Long Enough", slug="ab")
        self.assertEqual(ctx.exception.field, "slug")

    def test_suffix_fits_within_max_length(self):
        """Colliding slugs at the column limit are cut back before the suffix."""
        first = services.create_collection("blog", "First One", slug="a" * 150)
        second = services.create_collection("blog", "Second One", slug="a" * 150)

        self.assertEqual(first.slug, "a" * 150)
        self.assertEqual(second.slug, "a" * 148 + "-1")

    def test_truncated_base_drops_trailing_hyphen(self):
        slug = "a" * 147 + "-bb"
        services.create_collection("blog", "First One", slug=slug)
        second = services.create_collection("blog", "Second One", slug=slug)

        self.assertEqual(second.slug, "a" * 147 + "-1")
        self.assertLessEqual(len(second.slug), 150)


class CollectionUpdateTests(TestCase):
    """Tests for partial updates."""

    def setUp(self):
        self.collection = services.create_collection(
            "portfolio", "Mountains", description="Peaks", priority=2
        )

    def test_none_fields_are_left_alone(self):
        updated = services.update_collection(
            self.collection.pk, title="High Mountains", description=None
        )
        self.assertEqual(updated.title, "High Mountains")
        self.assertEqual(updated.description, "Peaks")
        self.assertEqual(updated.slug, "mountains")

    def test_new_slug_is_resolved_against_others(self):
        services.create_collection("portfolio", "Alps")
        updated = services.update_collection(self.collection.pk, slug="Alps")
        self.assertEqual(updated.slug, "alps-1")

    def test_same_slug_keeps_slug(self):
        updated = services.update_collection(self.collection.pk, slug="mountains")
        self.assertEqual(updated.slug, "mountains")

    def test_page_size_below_one_is_ignored(self):
        updated = services.update_collection(self.collection.pk, content_per_page=0)
        self.assertEqual(updated.content_per_page, 30)

        updated = services.update_collection(self.collection.pk, content_per_page=15)
        self.assertEqual(updated.content_per_page, 15)

    def test_invalid_values_name_the_field(self):
        with self.assertRaises(ValidationError) as ctx:
            services.update_collection(self.collection.pk, priority=9)
        self.assertEqual(ctx.exception.field, "priority")

        with self.assertRaises(ValidationError) as ctx:
            services.update_collection(self.collection.pk, description="x" * 501)
        self.assertEqual(ctx.exception.field, "description")

    def test_unknown_field_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.update_collection(self.collection.pk, total_content=99)

    def test_missing_collection(self):
        with self.assertRaises(NotFoundError):
            services.update_collection(999999, title="Nope")


class CoverImageTests(TestCase):
    """Tests for choosing and clearing the cover through update_collection()."""

    def setUp(self):
        self.collection = services.create_collection("art_gallery", "Covers")
        self.image = create_content(
            "image",
            ImagePayload(data=make_image_bytes(), filename="cover.jpg"),
            blob_store=InMemoryBlobStore(),
        )

    def test_set_cover(self):
        updated = services.update_collection(self.collection.pk, cover_image_id=self.image.pk)

        self.collection.refresh_from_db()
        self.assertEqual(updated.cover_image_id, self.image.pk)
        self.assertEqual(self.collection.cover_image_id, self.image.pk)

    def test_zero_clears_cover(self):
        services.update_collection(self.collection.pk, cover_image_id=self.image.pk)
        services.update_collection(self.collection.pk, cover_image_id=0)

        self.collection.refresh_from_db()
        self.assertIsNone(self.collection.cover_image_id)

    def test_cover_left_alone_when_not_given(self):
        services.update_collection(self.collection.pk, cover_image_id=self.image.pk)
        services.update_collection(self.collection.pk, title="Covers Renamed")

        self.collection.refresh_from_db()
        self.assertEqual(self.collection.cover_image_id, self.image.pk)

    def test_missing_cover(self):
        with self.assertRaises(NotFoundError) as ctx:
            services.update_collection(self.collection.pk, cover_image_id=999999)
        self.assertEqual(ctx.exception.resource, "content")

    def test_cover_must_be_an_image(self):
        text = create_content("text", TextPayload(body="not a picture"))
        with self.assertRaises(ValidationError) as ctx:
            services.update_collection(self.collection.pk, cover_image_id=text.pk)
        self.assertEqual(ctx.exception.field, "cover_image")

        self.collection.refresh_from_db()
        self.assertIsNone(self.collection.cover_image_id)


@override_settings(GALLERY_PASSWORD_ITERATIONS=1000)
class PasswordGateTests(TestCase):
    """Tests for password-protected collections."""

    def setUp(self):
        self.gallery = services.create_collection("client_gallery", "Private Shoot")

    def test_unprotected_collection_is_open(self):
        self.assertTrue(services.check_access(self.gallery, None))
        self.assertTrue(services.check_access(self.gallery, "anything"))

    def test_set_password_gates_access(self):
        gallery = services.set_password(self.gallery.pk, "s3cret")

        self.assertTrue(gallery.is_password_protected)
        self.assertNotEqual(gallery.password_hash, "s3cret")
        self.assertTrue(services.check_access(gallery, "s3cret"))
        self.assertFalse(services.check_access(gallery, "wrong"))
        self.assertFalse(services.check_access(gallery, ""))

    def test_password_on_create(self):
        gallery = services.create_collection("client_gallery", "Locked", password="pw-123")
        self.assertTrue(services.check_access(gallery, "pw-123"))

    def test_each_collection_gets_its_own_salt(self):
        first = services.create_collection("client_gallery", "Client A", password="same")
        second = services.create_collection("client_gallery", "Client B", password="same")
        self.assertNotEqual(first.password_hash, second.password_hash)

    def test_protected_without_hash_denies(self):
        self.gallery.is_password_protected = True
        self.assertFalse(services.check_access(self.gallery, "anything"))

    def test_clear_password(self):
        services.set_password(self.gallery.pk, "s3cret")
        gallery = services.clear_password(self.gallery.pk)

        self.assertFalse(gallery.is_password_protected)
        self.assertEqual(gallery.password_hash, "")
        self.assertTrue(services.check_access(gallery, None))

    def test_none_password_fails_fast(self):
        with self.assertRaises(TypeError):
            services.set_password(self.gallery.pk, None)

    def test_empty_password_is_invalid(self):
        with self.assertRaises(ValidationError):
            services.set_password(self.gallery.pk, "")


class CollectionDeleteAndListTests(TestCase):
    """Tests for deletion and listing."""

    def test_delete_keeps_content(self):
        collection = services.create_collection("blog", "Short Lived")
        content = services.add_text(collection.pk, TextPayload(body="Still here"))

        services.delete_collection(collection.pk)

        self.assertFalse(Collection.objects.filter(pk=collection.pk).exists())
        self.assertFalse(CollectionContent.objects.filter(content=content).exists())
        self.assertTrue(Content.objects.filter(pk=content.pk).exists())

    def test_delete_missing_collection(self):
        with self.assertRaises(NotFoundError):
            services.delete_collection(424242)

    def test_lookup_by_slug(self):
        collection = services.create_collection("portfolio", "Coastlines")
        self.assertEqual(services.get_collection_by_slug("coastlines").pk, collection.pk)
        with self.assertRaises(NotFoundError):
            services.get_collection_by_slug("nowhere")

    def test_list_by_type_and_visibility(self):
        blog = services.create_collection("blog", "Journal", priority=1)
        portfolio = services.create_collection("portfolio", "Work", priority=3)
        services.create_collection("client_gallery", "Client Work")

        visible = list(services.list_collections(visible_only=True))
        self.assertEqual(visible, [blog, portfolio])

        blogs = list(services.list_collections(collection_type="blog"))
        self.assertEqual(blogs, [blog])
