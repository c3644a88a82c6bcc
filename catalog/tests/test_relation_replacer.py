"""
Tests for the relation replacer.

Run against the in-memory FakeStore from conftest, which enforces the same
existence rules as the database triggers and foreign keys.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from catalog.errors import StoreUnavailable, ValidationRejected
from catalog.services.relation_replacer import RelationReplacer, coerce_rows, to_storage_rows


def _ref(label: str, kind: str = "official") -> dict:
    return {"reference_type": kind, "label": label, "url": f"https://example.com/{label.lower()}"}


class TestReplace:
    """Stored set equals the target list after a successful replace."""

    async def test_replaces_existing_rows(self, store, replacer):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        await replacer.replace("game", game_id, "references", [_ref("Old")])

        outcome = await replacer.replace("game", game_id, "references", [_ref("Home"), _ref("Review", "review")])

        assert outcome.ok
        assert outcome.applied_count == 2
        assert [r["label"] for r in store.references_for("game", game_id)] == ["Home", "Review"]

    async def test_idempotent(self, store, replacer):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        target = [_ref("Home"), _ref("Shop", "source")]

        await replacer.replace("game", game_id, "references", target)
        first = list(store.references_for("game", game_id))
        await replacer.replace("game", game_id, "references", target)

        assert store.references_for("game", game_id) == first

    async def test_empty_list_removes_all(self, store, replacer):
        product_id = store.add_host("product", title="Myrskyn aika", slug="myrskyn-aika")
        await replacer.replace("product", product_id, "isbns", [{"isbn": "978-951-98765-0-1"}])

        outcome = await replacer.replace("product", product_id, "isbns", [])

        assert outcome.ok
        assert outcome.applied_count == 0
        assert store.rows("product", product_id, "isbns") == []

    async def test_empty_list_skips_insert(self, store, replacer):
        product_id = store.add_host("product", title="Myrskyn aika", slug="myrskyn-aika")

        await replacer.replace("product", product_id, "isbns", [])

        assert ("insert", "product", "isbns") not in store.calls

    async def test_label_order_preserved(self, store, replacer, relation_repo):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        labels = [store.add_label() for _ in range(3)]
        target = [{"label_id": labels[2]}, {"label_id": labels[0]}, {"label_id": labels[1]}]

        await replacer.replace("game", game_id, "labels", target)
        stored = await relation_repo.list_for_host("game", game_id, "labels")

        assert [row["label_id"] for row in stored] == [labels[2], labels[0], labels[1]]
        assert [row["idx"] for row in stored] == [0, 1, 2]

    async def test_other_kinds_untouched(self, store, replacer):
        product_id = store.add_host("product", title="Myrskyn aika", slug="myrskyn-aika")
        await replacer.replace("product", product_id, "references", [_ref("Home")])

        await replacer.replace("product", product_id, "isbns", [{"isbn": "978-951-98765-0-1"}])

        assert len(store.references_for("product", product_id)) == 1

    async def test_other_hosts_untouched(self, store, replacer):
        first = store.add_host("game", name="Praedor", slug="praedor")
        second = store.add_host("game", name="Astraterra", slug="astraterra")
        await replacer.replace("game", second, "references", [_ref("Home")])

        await replacer.replace("game", first, "references", [])

        assert len(store.references_for("game", second)) == 1


class TestReplaceFailures:
    """Failures are reported in the outcome, never raised past the replacer."""

    async def test_insert_failure_leaves_kind_empty(self, store, replacer):
        """Delete committed before the insert failed: the old rows are gone."""
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        creator_id = store.add_host("creator", name="Ville Vuorela", slug="ville-vuorela")
        await replacer.replace("game", game_id, "creators", [{"creator_id": creator_id, "role": "Designer"}])

        outcome = await replacer.replace("game", game_id, "creators", [{"creator_id": uuid4(), "role": "Designer"}])

        assert not outcome.ok
        assert outcome.emptied is True
        assert outcome.error["code"] == "referential_violation"
        assert store.rows("game", game_id, "creators") == []

    async def test_insert_is_all_or_nothing(self, store, replacer):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        creator_id = store.add_host("creator", name="Ville Vuorela", slug="ville-vuorela")

        outcome = await replacer.replace(
            "game",
            game_id,
            "creators",
            [{"creator_id": creator_id, "role": "Designer"}, {"creator_id": uuid4(), "role": "Artist"}],
        )

        assert not outcome.ok
        assert store.rows("game", game_id, "creators") == []

    async def test_delete_failure_leaves_rows(self, store, replacer):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        await replacer.replace("game", game_id, "references", [_ref("Home")])
        store.fail_on[("delete", "references")] = StoreUnavailable("connection reset")
        store.calls.clear()

        outcome = await replacer.replace("game", game_id, "references", [_ref("New")])

        assert not outcome.ok
        assert outcome.emptied is False
        assert outcome.error["code"] == "store_unavailable"
        assert [r["label"] for r in store.references_for("game", game_id)] == ["Home"]
        assert store.calls == [("delete", "game", "references")]

    async def test_missing_host_reference_rejected(self, store, replacer):
        outcome = await replacer.replace("publisher", uuid4(), "references", [_ref("Home")])

        assert not outcome.ok
        assert outcome.error["code"] == "referential_violation"

    async def test_wrong_kind_for_host(self, store, replacer):
        publisher_id = store.add_host("publisher", name="Ironspine", slug="ironspine")

        with pytest.raises(ValidationRejected):
            await replacer.replace("publisher", publisher_id, "creators", [])

        assert store.calls == []

    async def test_duplicate_creator_rejected_before_storage(self, store, replacer):
        """Two identical (creator_id, role) rows would hit the primary key after the delete."""
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        creator_id = store.add_host("creator", name="Ville Vuorela", slug="ville-vuorela")
        await replacer.replace("game", game_id, "creators", [{"creator_id": creator_id, "role": "Designer"}])
        store.calls.clear()
        row = {"creator_id": creator_id, "role": "Artist"}

        with pytest.raises(ValidationRejected) as exc_info:
            await replacer.replace("game", game_id, "creators", [row, dict(row)])

        assert store.calls == []
        assert str(creator_id) in exc_info.value.detail
        assert [r["role"] for r in store.rows("game", game_id, "creators")] == ["Designer"]

    async def test_same_creator_in_two_roles_allowed(self, store, replacer):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        creator_id = store.add_host("creator", name="Ville Vuorela", slug="ville-vuorela")

        outcome = await replacer.replace(
            "game",
            game_id,
            "creators",
            [{"creator_id": creator_id, "role": "Designer"}, {"creator_id": creator_id, "role": "Artist"}],
        )

        assert outcome.applied_count == 2

    async def test_duplicate_label_rejected_before_storage(self, store, replacer):
        product_id = store.add_host("product", title="Myrskyn aika", slug="myrskyn-aika")
        first, second = store.add_label(), store.add_label()
        await replacer.replace("product", product_id, "labels", [{"label_id": first}])
        store.calls.clear()

        with pytest.raises(ValidationRejected):
            await replacer.replace(
                "product", product_id, "labels", [{"label_id": second}, {"label_id": first}, {"label_id": second}]
            )

        assert store.calls == []
        assert [r["label_id"] for r in store.rows("product", product_id, "labels")] == [first]

    async def test_invalid_row_rejected_before_storage(self, store, replacer):
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        await replacer.replace("game", game_id, "references", [_ref("Home")])
        store.calls.clear()

        with pytest.raises(ValidationRejected):
            await replacer.replace(
                "game", game_id, "references", [{"reference_type": "blog", "label": "x", "url": "x"}]
            )

        assert store.calls == []
        assert len(store.references_for("game", game_id)) == 1


class TestAtomicReplace:
    """atomic=True: delete and insert commit together or not at all."""

    async def test_success(self, store, relation_repo):
        replacer = RelationReplacer(relation_repo, atomic=True)
        game_id = store.add_host("game", name="Praedor", slug="praedor")

        outcome = await replacer.replace("game", game_id, "references", [_ref("Home")])

        assert outcome.ok
        assert outcome.applied_count == 1

    async def test_failed_insert_keeps_old_rows(self, store, relation_repo):
        replacer = RelationReplacer(relation_repo, atomic=True)
        game_id = store.add_host("game", name="Praedor", slug="praedor")
        creator_id = store.add_host("creator", name="Ville Vuorela", slug="ville-vuorela")
        await replacer.replace("game", game_id, "creators", [{"creator_id": creator_id, "role": "Designer"}])

        outcome = await replacer.replace("game", game_id, "creators", [{"creator_id": uuid4(), "role": "Designer"}])

        assert not outcome.ok
        assert outcome.emptied is False
        assert [r["creator_id"] for r in store.rows("game", game_id, "creators")] == [creator_id]


class TestRowConversion:
    """Row coercion and column mapping."""

    def test_unknown_kind(self):
        with pytest.raises(ValidationRejected):
            coerce_rows("tags", [])

    def test_reference_citation_drops_empty_fields(self):
        rows = coerce_rows(
            "references",
            [{**_ref("Review", "review"), "citation_details": {"author": "A. Kirjoittaja"}}],
        )
        assert to_storage_rows("references", rows)[0]["citation_details"] == {"author": "A. Kirjoittaja"}

    def test_reference_without_citation(self):
        rows = coerce_rows("references", [_ref("Home")])
        assert to_storage_rows("references", rows)[0]["citation_details"] is None

    def test_based_on_stores_only_given_source(self):
        rows = coerce_rows("based_on", [{"based_on_url": "https://example.com/srd", "label": "SRD"}])
        assert to_storage_rows("based_on", rows) == [
            {"based_on_game_id": None, "based_on_url": "https://example.com/srd", "label": "SRD"}
        ]
