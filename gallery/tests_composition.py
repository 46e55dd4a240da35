"""
Unit Tests for Collection Composition
=====================================
Tests cover:
- Placing content (append, explicit index, conflicts)
- Removing placements and the cached counter
- Cover image upkeep
- Recount task, management command and delete signal
"""

from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.test import TestCase

from gallery import services
from gallery.content import ImagePayload, TextPayload, create_content
from gallery.exceptions import ConflictError, NotFoundError, ValidationError
from gallery.models import Collection, CollectionContent, Content
from gallery.tasks import recount_collection_totals
from gallery.testutils import InMemoryBlobStore, make_image_bytes


class AddContentTests(TestCase):
    """Tests for services.add_content()."""

    def setUp(self):
        self.collection = services.create_collection("portfolio", "Placements")
        self.first = create_content("text", TextPayload(body="one"))
        self.second = create_content("text", TextPayload(body="two"))

    def test_append_to_empty_collection_starts_at_zero(self):
        link = services.add_content(self.collection.pk, self.first.pk)
        self.assertEqual(link.order_index, 0)

    def test_append_goes_past_highest_index(self):
        services.add_content(self.collection.pk, self.first.pk, order_index=8)
        link = services.add_content(self.collection.pk, self.second.pk)
        self.assertEqual(link.order_index, 9)

    def test_duplicate_placement_conflicts(self):
        services.add_content(self.collection.pk, self.first.pk)
        with self.assertRaises(ConflictError):
            services.add_content(self.collection.pk, self.first.pk)

    def test_used_index_conflicts_by_default(self):
        services.add_content(self.collection.pk, self.first.pk, order_index=0)
        with self.assertRaises(ConflictError):
            services.add_content(self.collection.pk, self.second.pk, order_index=0)
        self.assertEqual(CollectionContent.objects.count(), 1)

    def test_used_index_appends_when_allowed(self):
        services.add_content(self.collection.pk, self.first.pk, order_index=0)
        link = services.add_content(
            self.collection.pk, self.second.pk, order_index=0, allow_append=True
        )
        self.assertEqual(link.order_index, 1)

    def test_negative_index_is_invalid(self):
        with self.assertRaises(ValidationError):
            services.add_content(self.collection.pk, self.first.pk, order_index=-3)

    def test_missing_records(self):
        with self.assertRaises(NotFoundError) as ctx:
            services.add_content(999999, self.first.pk)
        self.assertEqual(ctx.exception.resource, "collection")

        with self.assertRaises(NotFoundError) as ctx:
            services.add_content(self.collection.pk, 999999)
        self.assertEqual(ctx.exception.resource, "content")

    def test_same_content_in_two_collections(self):
        other = services.create_collection("blog", "Second Home")
        services.add_content(self.collection.pk, self.first.pk)
        services.add_content(other.pk, self.first.pk)

        self.assertEqual(CollectionContent.objects.filter(content=self.first).count(), 2)

    def test_ties_are_broken_by_link_id(self):
        """Links sharing an index (legacy data) still list in a stable order."""
        services.add_content(self.collection.pk, self.first.pk, order_index=3)
        CollectionContent.objects.create(
            collection=self.collection, content=self.second, order_index=3
        )
        ids = [link.content_id for link in services.list_ordered(self.collection.pk)]
        self.assertEqual(ids, [self.first.pk, self.second.pk])

    def test_list_ordered_is_restartable(self):
        services.add_content(self.collection.pk, self.first.pk)
        services.add_content(self.collection.pk, self.second.pk)
        links = services.list_ordered(self.collection.pk)

        self.assertEqual(list(links.all()), list(links.all()))


class RemoveContentTests(TestCase):
    """Tests for services.remove_content()."""

    def setUp(self):
        self.collection = services.create_collection("art_gallery", "Removals")
        self.store = InMemoryBlobStore()

    def _add_image(self, name):
        return services.add_image(
            self.collection.pk,
            ImagePayload(data=make_image_bytes(), filename=name),
            blob_store=self.store,
        )

    def test_remove_keeps_content_and_decrements(self):
        content = services.add_text(self.collection.pk, TextPayload(body="bye"))
        services.remove_content(self.collection.pk, content.pk)

        self.collection.refresh_from_db()
        self.assertEqual(self.collection.total_content, 0)
        self.assertTrue(Content.objects.filter(pk=content.pk).exists())
        self.assertFalse(CollectionContent.objects.exists())

    def test_remove_missing_placement(self):
        content = create_content("text", TextPayload(body="loose"))
        with self.assertRaises(NotFoundError):
            services.remove_content(self.collection.pk, content.pk)

    def test_counter_never_goes_negative(self):
        content = services.add_text(self.collection.pk, TextPayload(body="x"))
        Collection.objects.filter(pk=self.collection.pk).update(total_content=0)

        services.remove_content(self.collection.pk, content.pk)
        self.collection.refresh_from_db()
        self.assertEqual(self.collection.total_content, 0)

    def test_removing_cover_promotes_next_image(self):
        cover = self._add_image("one.jpg")
        services.add_text(self.collection.pk, TextPayload(body="between"))
        nxt = self._add_image("two.jpg")

        services.remove_content(self.collection.pk, cover.pk)
        self.collection.refresh_from_db()
        self.assertEqual(self.collection.cover_image_id, nxt.pk)

        services.remove_content(self.collection.pk, nxt.pk)
        self.collection.refresh_from_db()
        self.assertIsNone(self.collection.cover_image_id)

    def test_update_missing_placement(self):
        with self.assertRaises(NotFoundError):
            services.update_placement(self.collection.pk, 999999, visible=False)


class RecountTests(TestCase):
    """Tests for the recount task, command and delete signal."""

    def setUp(self):
        self.collection = services.create_collection("blog", "Counted")
        self.content = services.add_text(self.collection.pk, TextPayload(body="a"))
        services.add_text(self.collection.pk, TextPayload(body="b"))
        Collection.objects.filter(pk=self.collection.pk).update(total_content=9)

    def test_task_fixes_drift(self):
        result = recount_collection_totals.apply(args=([self.collection.pk],)).get()

        self.assertTrue(result["success"])
        self.assertEqual(result["collection_ids"], [self.collection.pk])
        self.collection.refresh_from_db()
        self.assertEqual(self.collection.total_content, 2)

    def test_command_dry_run_changes_nothing(self):
        out = StringIO()
        call_command("recount_collections", "--dry-run", stdout=out)

        self.assertIn("9 -> 2", out.getvalue())
        self.collection.refresh_from_db()
        self.assertEqual(self.collection.total_content, 9)

    def test_command_fixes_drift(self):
        out = StringIO()
        call_command("recount_collections", f"--collection-id={self.collection.pk}", stdout=out)

        self.assertIn("Corrected 1", out.getvalue())
        self.collection.refresh_from_db()
        self.assertEqual(self.collection.total_content, 2)

    def test_command_reports_unknown_collection(self):
        out = StringIO()
        call_command("recount_collections", "--collection-id=999999", stdout=out)
        self.assertIn("999999", out.getvalue())

    def test_deleting_placed_content_schedules_recount(self):
        with mock.patch.object(recount_collection_totals, "delay") as delay:
            with self.captureOnCommitCallbacks(execute=True):
                Content.objects.get(pk=self.content.pk).delete()

        delay.assert_called_once_with([self.collection.pk])
