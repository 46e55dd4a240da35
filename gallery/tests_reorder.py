"""
Unit Tests for the Reorder Engine
=================================
Tests cover:
- Swapping and partial reorders
- Whole-batch rejection on bad input
- Repeating a batch
- Empty batches
"""

from django.test import TestCase

from gallery import services
from gallery.content import TextPayload
from gallery.exceptions import NotFoundError, ValidationError
from gallery.models import CollectionContent
from gallery.services import ReorderInstruction


class ReorderTests(TestCase):
    """Tests for services.reorder()."""

    def setUp(self):
        self.collection = services.create_collection("portfolio", "Reorder Me")
        self.a = services.add_text(self.collection.pk, TextPayload(body="A"))
        self.b = services.add_text(self.collection.pk, TextPayload(body="B"))
        self.c = services.add_text(self.collection.pk, TextPayload(body="C"))

    def _order(self):
        return [link.content_id for link in services.list_ordered(self.collection.pk)]

    def _snapshot(self):
        return list(
            CollectionContent.objects.filter(collection=self.collection)
            .order_by("id")
            .values_list("id", "content_id", "order_index", "visible", "caption")
        )

    # ===================
    # Successful reorders
    # ===================

    def test_swap_first_and_last(self):
        """Moving item@2 to 0 and item@0 to 2 leaves item@1 in the middle."""
        view = services.reorder(
            self.collection.pk, [(self.c.pk, 0), (self.a.pk, 2)]
        )

        self.assertEqual(self._order(), [self.c.pk, self.b.pk, self.a.pk])
        self.assertEqual([item.id for item in view.items], [self.c.pk, self.b.pk, self.a.pk])
        self.assertEqual(view.page, 1)

    def test_accepts_instruction_objects_and_dicts(self):
        services.reorder(
            self.collection.pk,
            [
                ReorderInstruction(content_id=self.a.pk, order_index=10),
                {"content_id": self.b.pk, "order_index": 5},
            ],
        )
        self.assertEqual(self._order(), [self.c.pk, self.b.pk, self.a.pk])

    def test_partial_reorder_leaves_others_untouched(self):
        """Only the listed item moves; gaps are fine."""
        services.reorder(self.collection.pk, [(self.a.pk, 7)])

        indices = dict(
            CollectionContent.objects.filter(collection=self.collection).values_list(
                "content_id", "order_index"
            )
        )
        self.assertEqual(indices, {self.a.pk: 7, self.b.pk: 1, self.c.pk: 2})
        self.assertEqual(self._order(), [self.b.pk, self.c.pk, self.a.pk])

    def test_same_batch_twice_gives_same_order(self):
        batch = [(self.c.pk, 0), (self.a.pk, 2)]
        services.reorder(self.collection.pk, batch)
        first = self._snapshot()
        services.reorder(self.collection.pk, batch)

        self.assertEqual(self._snapshot(), first)

    def test_empty_batch_returns_current_state(self):
        before = self._snapshot()
        view = services.reorder(self.collection.pk, [])

        self.assertEqual(self._snapshot(), before)
        self.assertEqual([item.id for item in view.items], [self.a.pk, self.b.pk, self.c.pk])

    # ===================
    # Rejected batches
    # ===================

    def test_unknown_content_rejects_whole_batch(self):
        """One foreign id and nothing is written."""
        other = services.create_collection("portfolio", "Elsewhere")
        stranger = services.add_text(other.pk, TextPayload(body="Not here"))
        before = self._snapshot()

        with self.assertRaises(ValidationError) as ctx:
            services.reorder(
                self.collection.pk, [(self.c.pk, 0), (stranger.pk, 1), (self.a.pk, 2)]
            )

        self.assertIn(str(stranger.pk), str(ctx.exception))
        self.assertEqual(self._snapshot(), before)
        self.assertEqual(self._order(), [self.a.pk, self.b.pk, self.c.pk])

    def test_duplicate_targets_are_rejected(self):
        before = self._snapshot()
        with self.assertRaises(ValidationError) as ctx:
            services.reorder(self.collection.pk, [(self.a.pk, 0), (self.b.pk, 0)])
        self.assertEqual(ctx.exception.field, "order_index")
        self.assertEqual(self._snapshot(), before)

    def test_target_held_by_unmoved_item_is_rejected(self):
        before = self._snapshot()
        with self.assertRaises(ValidationError):
            services.reorder(self.collection.pk, [(self.c.pk, 1)])
        self.assertEqual(self._snapshot(), before)

    def test_negative_index_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.reorder(self.collection.pk, [(self.a.pk, -1)])

    def test_content_listed_twice_is_rejected(self):
        with self.assertRaises(ValidationError):
            services.reorder(self.collection.pk, [(self.a.pk, 4), (self.a.pk, 5)])

    def test_malformed_instruction(self):
        with self.assertRaises(ValidationError):
            services.reorder(self.collection.pk, [(self.a.pk,)])
        with self.assertRaises(ValidationError):
            services.reorder(self.collection.pk, [{"content_id": self.a.pk}])

    def test_missing_collection(self):
        with self.assertRaises(NotFoundError):
            services.reorder(999999, [(self.a.pk, 0)])
