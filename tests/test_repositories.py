"""
Tests for the repository layer.
"""

from sqlalchemy.orm import Session

from synthverify.db.repositories import CurationSessionRepository, ItemRepository


class TestItemRepository:
    """Tests for ItemRepository."""

    def test_upsert_creates_item(self, db_session: Session):
        repo = ItemRepository(db_session)

        stored = repo.upsert("item-1", {"query": "q", "answer": "a"}, session_id="s1")

        assert stored.id == "item-1"
        assert stored.session_id == "s1"
        assert stored.to_record() == {"query": "q", "answer": "a", "id": "item-1"}

    def test_upsert_merges_payload(self, db_session: Session):
        repo = ItemRepository(db_session)
        repo.upsert("item-1", {"query": "q", "answer": "a", "source": "gen"}, session_id="s1")

        stored = repo.upsert("item-1", {"answer": "b", "id": "ignored"})
        db_session.commit()
        db_session.expire_all()

        reloaded = repo.get("item-1")
        assert reloaded.payload == {"query": "q", "answer": "b", "source": "gen"}
        assert reloaded.session_id == "s1"
        assert stored.id == "item-1"

    def test_get_by_session(self, db_session: Session):
        repo = ItemRepository(db_session)
        repo.upsert("a", {"query": "1"}, session_id="s1")
        repo.upsert("b", {"query": "2"}, session_id="s2")
        repo.upsert("c", {"query": "3"}, session_id="s1")

        assert sorted(item.id for item in repo.get_by_session("s1")) == ["a", "c"]
        assert repo.count() == 3

    def test_save_final_dataset_strips_local_flags(self, db_session: Session):
        repo = ItemRepository(db_session)
        records = [
            {
                "id": "a",
                "query": "q",
                "score": 0.8,
                "is_duplicate": True,
                "duplicate_group_id": "g",
                "is_discarded": False,
                "has_unsaved_changes": False,
            }
        ]

        assert repo.save_final_dataset(records, "final") == 1

        rows = repo.get_final_dataset("final")
        assert len(rows) == 1
        payload = rows[0].payload
        assert payload["query"] == "q"
        assert payload["final_score"] == 0.8
        assert "verified_at" in payload
        for field in ("id", "is_duplicate", "duplicate_group_id", "is_discarded"):
            assert field not in payload
        assert rows[0].final_score == 0.8
        assert repo.get_final_dataset("other") == []


class TestCurationSessionRepository:
    """Tests for CurationSessionRepository."""

    def test_create_and_update_analytics(self, db_session: Session):
        repo = CurationSessionRepository(db_session)
        record = repo.create(name="batch-1", description="first batch")

        updated = repo.update_analytics(record.id, {"total_items": 3})

        assert updated.analytics == {"total_items": 3}
        assert repo.get_by_name("batch-1").id == record.id

    def test_update_missing_session(self, db_session: Session):
        import uuid

        repo = CurationSessionRepository(db_session)

        assert repo.update_analytics(uuid.uuid4(), {}) is None

    def test_get_recent(self, db_session: Session):
        repo = CurationSessionRepository(db_session)
        for i in range(3):
            repo.create(name=f"s{i}")

        assert len(repo.get_recent(limit=2)) == 2
        assert len(repo.get_recent(limit=10, offset=1)) == 2
