"""
Unit Tests for Pagination
=========================
Tests cover:
- Page arithmetic for any element count
- Navigation flags and neighbour pages
- Per-kind counts over the whole collection
- Page request validation
"""

import math

from django.test import SimpleTestCase, TestCase, override_settings

from gallery import services
from gallery.content import CodePayload, ImagePayload, TextPayload
from gallery.exceptions import NotFoundError, ValidationError
from gallery.pagination import build_paged_view, count_pages, validate_page_request
from gallery.testutils import InMemoryBlobStore, make_image_bytes


class PagedViewArithmeticTests(SimpleTestCase):
    """Tests for the pure build_paged_view() function."""

    def test_total_pages_matches_ceiling(self):
        for total in range(0, 40):
            for size in (1, 3, 10, 100):
                expected = math.ceil(total / size)
                self.assertEqual(count_pages(total, size), expected, (total, size))

    def test_empty_collection(self):
        view = build_paged_view([], page=1, page_size=10, total_elements=0)

        self.assertEqual(view.total_pages, 0)
        self.assertTrue(view.is_first)
        self.assertTrue(view.is_last)
        self.assertFalse(view.has_previous)
        self.assertFalse(view.has_next)
        self.assertIsNone(view.previous_page)
        self.assertIsNone(view.next_page)

    def test_first_and_last_flags(self):
        for page in (1, 2, 3):
            view = build_paged_view([], page=page, page_size=10, total_elements=25)
            self.assertEqual(view.is_first, page == 1)
            self.assertEqual(view.is_last, page == 3)
            self.assertEqual(view.has_previous, page > 1)
            self.assertEqual(view.has_next, page < 3)

    def test_neighbour_pages(self):
        middle = build_paged_view([], page=2, page_size=10, total_elements=25)
        self.assertEqual((middle.previous_page, middle.next_page), (1, 3))

        first = build_paged_view([], page=1, page_size=10, total_elements=25)
        self.assertEqual((first.previous_page, first.next_page), (None, 2))

    def test_page_past_the_end_points_back_to_last_page(self):
        view = build_paged_view([], page=7, page_size=10, total_elements=25)

        self.assertTrue(view.has_previous)
        self.assertEqual(view.previous_page, 3)
        self.assertIsNone(view.next_page)
        self.assertFalse(view.is_last)

    def test_kind_counts_are_copied(self):
        view = build_paged_view(
            [], page=1, page_size=5, total_elements=6, kind_counts={"image": 4, "code": 2}
        )
        self.assertEqual(
            (view.image_count, view.text_count, view.code_count, view.gif_count), (4, 0, 2, 0)
        )

    def test_page_request_validation(self):
        validate_page_request(1, 1)
        validate_page_request(3, 100)
        for page, size in [(0, 10), (-1, 10), (1, 0), (1, 101), ("1", 10), (1, None)]:
            with self.assertRaises(ValidationError):
                validate_page_request(page, size)

    @override_settings(GALLERY_MAX_PAGE_SIZE=20)
    def test_max_page_size_setting(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_page_request(1, 21)
        self.assertEqual(ctx.exception.field, "page_size")


class CollectionPageTests(TestCase):
    """Tests for services.get_page() and get_all()."""

    def setUp(self):
        self.collection = services.create_collection("blog", "Twenty Five")
        self.ids = [
            services.add_text(self.collection.pk, TextPayload(body=f"Entry {i}")).pk
            for i in range(25)
        ]

    def test_scenario_25_items_by_10(self):
        first = services.get_page(self.collection.pk, page=1, page_size=10)
        self.assertFalse(first.has_previous)
        self.assertTrue(first.has_next)
        self.assertEqual([item.id for item in first.items], self.ids[:10])

        last = services.get_page(self.collection.pk, page=3, page_size=10)
        self.assertFalse(last.has_next)
        self.assertTrue(last.is_last)
        self.assertIsNone(last.next_page)
        self.assertEqual(last.total_pages, 3)
        self.assertEqual(last.total_elements, 25)
        self.assertEqual([item.id for item in last.items], self.ids[20:])

    def test_default_page_size_is_collection_setting(self):
        view = services.get_page(self.collection.pk)
        self.assertEqual(view.page_size, 30)
        self.assertEqual(len(view.items), 25)
        self.assertEqual(view.total_pages, 1)

    def test_same_request_same_view(self):
        first = services.get_page(self.collection.pk, page=2, page_size=7)
        second = services.get_page(self.collection.pk, page=2, page_size=7)
        self.assertEqual(first, second)

    def test_counts_cover_whole_collection(self):
        services.add_code(self.collection.pk, CodePayload(body="x = 1", language="py"))
        services.add_image(
            self.collection.pk,
            ImagePayload(data=make_image_bytes(), filename="p.jpg"),
            blob_store=InMemoryBlobStore(),
        )

        view = services.get_page(self.collection.pk, page=1, page_size=5)
        self.assertEqual(len(view.items), 5)
        self.assertEqual(view.text_count, 25)
        self.assertEqual(view.code_count, 1)
        self.assertEqual(view.image_count, 1)
        self.assertEqual(view.gif_count, 0)

    def test_visible_only_hides_placements(self):
        services.update_placement(self.collection.pk, self.ids[0], visible=False)

        everything = services.get_page(self.collection.pk, page=1, page_size=10)
        public = services.get_page(self.collection.pk, page=1, page_size=10, visible_only=True)

        self.assertEqual(everything.total_elements, 25)
        self.assertEqual(public.total_elements, 24)
        self.assertNotIn(self.ids[0], [item.id for item in public.items])
        self.assertEqual(public.text_count, 24)

    def test_get_all_is_ordered(self):
        items = services.get_all(self.collection.pk)
        self.assertEqual([item.id for item in items], self.ids)
        self.assertEqual([item.order_index for item in items], list(range(25)))

    def test_invalid_page_requests(self):
        with self.assertRaises(ValidationError):
            services.get_page(self.collection.pk, page=0)
        with self.assertRaises(ValidationError):
            services.get_page(self.collection.pk, page=1, page_size=101)

    def test_missing_collection(self):
        with self.assertRaises(NotFoundError):
            services.get_page(999999)
        with self.assertRaises(NotFoundError):
            services.get_all(999999)
