"""Unit tests for persistence layer."""

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from neighborfit.domain.enums import (
    FamilyStatus,
    Hobby,
    LifestyleTag,
    LocationType,
    MaritalStatus,
    MatchStrength,
    TransportationPreference,
)
from neighborfit.domain.models import Match, MatchFeedbackUpdate, MatchScoreAudit, Neighborhood, User
from neighborfit.persistence import (
    CandidateFilter,
    DatabaseConnectionError,
    DataIntegrityError,
    MatchRepository,
    NeighborhoodRepository,
    PairLockRegistry,
    RecordNotFoundError,
    UserRepository,
    close_database,
    get_engine,
    get_session,
    init_database,
)
from neighborfit.persistence.schema import MatchModel, NeighborhoodModel, UserModel


@pytest.fixture
def database(tmp_path):
    """File-backed database for each test."""
    init_database(f"sqlite:///{tmp_path / 'test.db'}")
    yield
    close_database()


class TestDatabaseInitialization:
    """Tests for database initialization."""

    def test_init_database_success(self, tmp_path):
        """Test successful database initialization."""
        db_file = tmp_path / "test.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        with get_session() as session:
            assert session is not None

        close_database()

    def test_init_database_creates_parent_directories(self, tmp_path):
        db_file = tmp_path / "subdir" / "nested" / "test.db"

        init_database(f"sqlite:///{db_file}")

        assert db_file.exists()
        close_database()

    def test_init_database_invalid_url_raises_error(self):
        with pytest.raises(DatabaseConnectionError):
            init_database("")

    def test_schema_creation_is_idempotent(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'test.db'}"

        init_database(db_url)
        close_database()
        init_database(db_url)

        with get_session() as session:
            tables = {
                row[0]
                for row in session.execute(
                    text("SELECT name FROM sqlite_master WHERE type='table'")
                )
            }
        close_database()

        assert {"users", "neighborhoods", "matches", "match_score_audit"} <= tables

    def test_foreign_keys_enabled(self, database):
        with get_engine().connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1

    def test_get_session_without_init_raises_error(self):
        close_database()

        with pytest.raises(DatabaseConnectionError, match="Database not initialized"):
            with get_session():
                pass


class TestSessionManagement:
    """Tests for session management."""

    def test_session_commits_on_success(self, database):
        with get_session() as session:
            session.add(UserModel.from_domain(create_test_user()))

        with get_session() as session:
            assert UserRepository(session).count() == 1

    def test_session_rolls_back_on_exception(self, database):
        with pytest.raises(ValueError):
            with get_session() as session:
                session.add(UserModel.from_domain(create_test_user()))
                session.flush()
                raise ValueError("Test exception")

        with get_session() as session:
            assert UserRepository(session).count() == 0


class TestORMModelConversions:
    """Tests for ORM model to domain model conversions."""

    def test_user_round_trip_keeps_tag_sets(self):
        user = create_test_user(id=5)

        converted = UserModel.from_domain(user).to_domain()

        assert converted.lifestyle_preferences == user.lifestyle_preferences
        assert converted.hobbies == user.hobbies
        assert converted.family_status == FamilyStatus.SINGLE

    def test_tags_stored_sorted(self):
        model = UserModel.from_domain(create_test_user())
        assert model.lifestyle_preferences == ["URBAN", "YOUNG_PROFESSIONAL"]

    def test_neighborhood_handles_none_values(self):
        neighborhood = Neighborhood(name="Bare", city="Nowhere", state="NA")

        converted = NeighborhoodModel.from_domain(neighborhood).to_domain()

        assert converted.median_home_value is None
        assert converted.amenities == frozenset()

    def test_match_timestamps_are_utc(self):
        match = create_test_match(user_id=1, neighborhood_id=2)

        converted = MatchModel.from_domain(match).to_domain()

        assert converted.created_at.tzinfo == timezone.utc
        assert converted.created_at == match.created_at


class TestUserRepository:
    """Tests for UserRepository."""

    def test_add_assigns_id_and_timestamps(self, database):
        with get_session() as session:
            stored = UserRepository(session).add(create_test_user())

        assert stored.id is not None
        assert stored.created_at is not None
        assert stored.updated_at is not None

    def test_get_by_id_and_email(self, database):
        with get_session() as session:
            stored = UserRepository(session).add(create_test_user())

        with get_session() as session:
            repo = UserRepository(session)
            assert repo.get_by_id(stored.id) == stored
            assert repo.get_by_email("test.user@example.com").id == stored.id
            assert repo.get_by_id(999) is None

    def test_duplicate_email_raises_integrity_error(self, database):
        with get_session() as session:
            UserRepository(session).add(create_test_user())

        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                UserRepository(session).add(create_test_user(name="Someone Else"))

    def test_update_keeps_created_at(self, database):
        with get_session() as session:
            stored = UserRepository(session).add(create_test_user())

        with get_session() as session:
            updated = UserRepository(session).update(stored.model_copy(update={"age": 41}))

        assert updated.age == 41
        assert updated.created_at == stored.created_at

    def test_update_missing_user_raises(self, database):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                UserRepository(session).update(create_test_user(id=404))

    def test_list_ids_ordered(self, database):
        with get_session() as session:
            repo = UserRepository(session)
            for i in range(3):
                repo.add(create_test_user(email=f"user{i}@example.com"))

        with get_session() as session:
            ids = UserRepository(session).list_ids()

        assert ids == sorted(ids)
        assert len(ids) == 3

    def test_delete_cascades_to_matches_and_audit(self, database):
        user_id, neighborhood_id = seed_pair()
        with get_session() as session:
            repo = MatchRepository(session)
            match = repo.upsert(create_test_match(user_id, neighborhood_id))
            repo.add_audit(create_test_audit(match))

        with get_session() as session:
            UserRepository(session).delete(user_id)

        with get_session() as session:
            repo = MatchRepository(session)
            assert repo.count() == 0
            assert repo.audit_for_user(user_id) == []
            assert NeighborhoodRepository(session).count() == 1

    def test_delete_missing_user_raises(self, database):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                UserRepository(session).delete(12345)


class TestNeighborhoodRepository:
    """Tests for NeighborhoodRepository."""

    def _seed(self):
        neighborhoods = [
            create_test_neighborhood(name="Cheap", median_home_value=200000, safety_score=5.0),
            create_test_neighborhood(name="Mid", median_home_value=450000, safety_score=8.0),
            create_test_neighborhood(
                name="Pricey",
                median_home_value=900000,
                safety_score=9.0,
                lifestyle_characteristics={LifestyleTag.QUIET},
            ),
            create_test_neighborhood(name="Unknown Value", median_home_value=None, safety_score=None),
        ]
        with get_session() as session:
            repo = NeighborhoodRepository(session)
            return [repo.add(n) for n in neighborhoods]

    def test_find_candidates_without_filter_returns_all_by_id(self, database):
        stored = self._seed()

        with get_session() as session:
            found = NeighborhoodRepository(session).find_candidates()

        assert [n.id for n in found] == [n.id for n in stored]

    def test_home_value_bounds_keep_missing_values(self, database):
        self._seed()

        with get_session() as session:
            found = NeighborhoodRepository(session).find_candidates(
                CandidateFilter(min_home_value=300000, max_home_value=600000)
            )

        assert [n.name for n in found] == ["Mid", "Unknown Value"]

    def test_home_value_bounds_can_exclude_missing_values(self, database):
        self._seed()

        with get_session() as session:
            found = NeighborhoodRepository(session).find_candidates(
                CandidateFilter(
                    min_home_value=300000,
                    max_home_value=600000,
                    include_missing_home_value=False,
                )
            )

        assert [n.name for n in found] == ["Mid"]

    def test_safety_bound_excludes_missing_values(self, database):
        self._seed()

        with get_session() as session:
            found = NeighborhoodRepository(session).find_candidates(
                CandidateFilter(min_safety_score=8.0)
            )

        assert [n.name for n in found] == ["Mid", "Pricey"]

    def test_lifestyle_filter_matches_any_tag(self, database):
        self._seed()

        with get_session() as session:
            found = NeighborhoodRepository(session).find_candidates(
                CandidateFilter(lifestyle_characteristics=frozenset({LifestyleTag.QUIET}))
            )

        assert [n.name for n in found] == ["Pricey"]

    @pytest.mark.parametrize(
        "assignment",
        [
            "safety_score = 42",
            "lifestyle_characteristics = '[\"BEACHY\"]'",
        ],
    )
    def test_invalid_row_is_rejected_without_hiding_others(self, database, assignment):
        stored = self._seed()
        bad_id = stored[1].id
        with get_session() as session:
            session.execute(
                text(f"UPDATE neighborhoods SET {assignment} WHERE id = :id"), {"id": bad_id}
            )

        with get_session() as session:
            found, rejected = NeighborhoodRepository(session).find_candidates_checked()

        assert [n.name for n in found] == ["Cheap", "Pricey", "Unknown Value"]
        assert [row.neighborhood_id for row in rejected] == [bad_id]
        assert rejected[0].reason.startswith("invalid stored profile")

    def test_find_candidates_drops_invalid_rows(self, database):
        stored = self._seed()
        with get_session() as session:
            session.execute(
                text("UPDATE neighborhoods SET safety_score = 42 WHERE id = :id"),
                {"id": stored[0].id},
            )

        with get_session() as session:
            found = NeighborhoodRepository(session).find_candidates()

        assert [n.name for n in found] == ["Mid", "Pricey", "Unknown Value"]

    def test_get_many(self, database):
        stored = self._seed()

        with get_session() as session:
            found = NeighborhoodRepository(session).get_many([stored[0].id, stored[2].id, 999])

        assert set(found) == {stored[0].id, stored[2].id}

    def test_delete_cascades_to_matches(self, database):
        user_id, neighborhood_id = seed_pair()
        with get_session() as session:
            MatchRepository(session).upsert(create_test_match(user_id, neighborhood_id))

        with get_session() as session:
            NeighborhoodRepository(session).delete(neighborhood_id)

        with get_session() as session:
            assert MatchRepository(session).count() == 0


class TestMatchRepository:
    """Tests for MatchRepository."""

    def test_upsert_inserts_new_match(self, database):
        user_id, neighborhood_id = seed_pair()

        with get_session() as session:
            stored = MatchRepository(session).upsert(create_test_match(user_id, neighborhood_id))

        assert stored.id is not None
        assert stored.pair == (user_id, neighborhood_id)

    def test_upsert_existing_pair_updates_scores_only(self, database):
        user_id, neighborhood_id = seed_pair()
        created = datetime(2025, 1, 1, tzinfo=timezone.utc)
        with get_session() as session:
            repo = MatchRepository(session)
            first = repo.upsert(create_test_match(user_id, neighborhood_id, scored_at=created))
            repo.update_feedback(first.id, MatchFeedbackUpdate(liked=True, rating=5))

        rescored = created + timedelta(days=2)
        with get_session() as session:
            second = MatchRepository(session).upsert(
                create_test_match(
                    user_id,
                    neighborhood_id,
                    overall_score=0.3,
                    match_strength=MatchStrength.POOR,
                    scored_at=rescored,
                )
            )

        assert second.id == first.id
        assert second.overall_score == 0.3
        assert second.match_strength == MatchStrength.POOR
        assert second.created_at == created
        assert second.updated_at == rescored
        assert second.liked is True
        assert second.rating == 5

        with get_session() as session:
            assert MatchRepository(session).count() == 1

    def test_duplicate_pair_insert_violates_unique_constraint(self, database):
        user_id, neighborhood_id = seed_pair()
        with get_session() as session:
            session.add(MatchModel.from_domain(create_test_match(user_id, neighborhood_id)))

        with pytest.raises(IntegrityError):
            with get_session() as session:
                session.add(MatchModel.from_domain(create_test_match(user_id, neighborhood_id)))

    def test_upsert_for_missing_user_raises_integrity_error(self, database):
        _, neighborhood_id = seed_pair()

        with pytest.raises(DataIntegrityError):
            with get_session() as session:
                MatchRepository(session).upsert(create_test_match(999, neighborhood_id))

    def test_update_feedback_applies_supplied_fields_only(self, database):
        user_id, neighborhood_id = seed_pair()
        with get_session() as session:
            repo = MatchRepository(session)
            match = repo.upsert(create_test_match(user_id, neighborhood_id))
            repo.update_feedback(match.id, MatchFeedbackUpdate(liked=True, feedback="Lovely"))

        with get_session() as session:
            updated = MatchRepository(session).update_feedback(
                match.id, MatchFeedbackUpdate(liked=False)
            )

        assert updated.liked is False
        assert updated.feedback == "Lovely"
        assert updated.visited is None
        assert updated.overall_score == match.overall_score

    def test_update_feedback_missing_match_raises(self, database):
        with pytest.raises(RecordNotFoundError):
            with get_session() as session:
                MatchRepository(session).update_feedback(77, MatchFeedbackUpdate(liked=True))

    def test_ranked_queries_break_ties_by_neighborhood_id(self, database):
        user_id, ids = seed_user_with_neighborhoods(3)
        with get_session() as session:
            repo = MatchRepository(session)
            for neighborhood_id in reversed(ids):
                repo.upsert(create_test_match(user_id, neighborhood_id, overall_score=0.7))

        with get_session() as session:
            repo = MatchRepository(session)
            listed = repo.list_for_user(user_id)
            top = repo.top_for_user(user_id, 2)

        assert [m.neighborhood_id for m in listed] == ids
        assert [m.neighborhood_id for m in top] == ids[:2]

    def test_score_range_and_strength_queries(self, database):
        user_id, ids = seed_user_with_neighborhoods(3)
        scores = [
            (0.9, MatchStrength.EXCELLENT),
            (0.5, MatchStrength.FAIR),
            (0.2, MatchStrength.POOR),
        ]
        with get_session() as session:
            repo = MatchRepository(session)
            for neighborhood_id, (score, strength) in zip(ids, scores):
                repo.upsert(
                    create_test_match(
                        user_id, neighborhood_id, overall_score=score, match_strength=strength
                    )
                )

        with get_session() as session:
            repo = MatchRepository(session)
            in_range = repo.list_by_score_range(0.5, 0.9)
            fair = repo.list_by_strength(MatchStrength.FAIR)
            counts = repo.count_by_strength()
            average = repo.average_score_for_user(user_id)

        assert [m.overall_score for m in in_range] == [0.9, 0.5]
        assert [m.neighborhood_id for m in fair] == [ids[1]]
        assert counts == {
            MatchStrength.EXCELLENT: 1,
            MatchStrength.GOOD: 0,
            MatchStrength.FAIR: 1,
            MatchStrength.POOR: 1,
        }
        assert average == pytest.approx((0.9 + 0.5 + 0.2) / 3)

    def test_user_min_score_query_is_scoped_to_user(self, database):
        user_id, ids = seed_user_with_neighborhoods(3)
        with get_session() as session:
            other_id = UserRepository(session).add(create_test_user(email="other@example.com")).id
            repo = MatchRepository(session)
            for neighborhood_id, score in zip(ids, [0.4, 0.8, 0.6]):
                repo.upsert(create_test_match(user_id, neighborhood_id, overall_score=score))
            repo.upsert(create_test_match(other_id, ids[0], overall_score=0.95))

        with get_session() as session:
            found = MatchRepository(session).list_for_user_min_score(user_id, 0.6)

        assert [m.overall_score for m in found] == [0.8, 0.6]
        assert {m.user_id for m in found} == {user_id}

    @pytest.mark.parametrize("component", ["lifestyle", "demographic", "location", "budget"])
    def test_min_subscore_query(self, database, component):
        user_id, ids = seed_user_with_neighborhoods(3)
        with get_session() as session:
            repo = MatchRepository(session)
            for neighborhood_id, subscore, overall in zip(ids, [0.3, 0.75, 0.9], [0.9, 0.5, 0.7]):
                match = create_test_match(user_id, neighborhood_id, overall_score=overall)
                repo.upsert(match.model_copy(update={f"{component}_score": subscore}))

        with get_session() as session:
            found = MatchRepository(session).list_by_min_subscore(component, 0.75)

        assert [m.neighborhood_id for m in found] == [ids[2], ids[1]]

    def test_min_subscore_query_rejects_unknown_component(self, database):
        with pytest.raises(ValueError):
            with get_session() as session:
                MatchRepository(session).list_by_min_subscore("commute", 0.5)

    def test_reacted_and_rated_queries(self, database):
        user_id, ids = seed_user_with_neighborhoods(4)
        with get_session() as session:
            repo = MatchRepository(session)
            matches = [
                repo.upsert(create_test_match(user_id, n, overall_score=score))
                for n, score in zip(ids, [0.9, 0.8, 0.7, 0.6])
            ]
            repo.update_feedback(matches[0].id, MatchFeedbackUpdate(rating=5))
            repo.update_feedback(matches[1].id, MatchFeedbackUpdate(liked=False))
            repo.update_feedback(matches[2].id, MatchFeedbackUpdate(liked=True, rating=3))

        with get_session() as session:
            repo = MatchRepository(session)
            reacted = repo.list_with_reaction_for_user(user_id)
            rated = repo.list_rated()

        assert [m.neighborhood_id for m in reacted] == [ids[1], ids[2]]
        assert [m.liked for m in reacted] == [False, True]
        assert [m.rating for m in rated] == [5, 3]

    def test_list_recent_newest_first(self, database):
        user_id, ids = seed_user_with_neighborhoods(3)
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        with get_session() as session:
            repo = MatchRepository(session)
            for offset, neighborhood_id in enumerate(ids):
                repo.upsert(
                    create_test_match(
                        user_id, neighborhood_id, scored_at=base + timedelta(hours=offset)
                    )
                )

        with get_session() as session:
            recent = MatchRepository(session).list_recent(2)

        assert [m.neighborhood_id for m in recent] == [ids[2], ids[1]]

    def test_empty_aggregates(self, database):
        with get_session() as session:
            repo = MatchRepository(session)
            assert repo.average_score() is None
            assert repo.count_by_strength() == {strength: 0 for strength in MatchStrength}
            assert repo.feedback_summary() == {
                "liked": 0,
                "visited": 0,
                "rated": 0,
                "mean_rating": None,
            }

    def test_feedback_summary(self, database):
        user_id, ids = seed_user_with_neighborhoods(3)
        with get_session() as session:
            repo = MatchRepository(session)
            matches = [repo.upsert(create_test_match(user_id, n)) for n in ids]
            repo.update_feedback(matches[0].id, MatchFeedbackUpdate(liked=True, rating=4))
            repo.update_feedback(matches[1].id, MatchFeedbackUpdate(liked=False, visited=True, rating=2))

        with get_session() as session:
            summary = MatchRepository(session).feedback_summary()

        assert summary == {"liked": 1, "visited": 1, "rated": 2, "mean_rating": 3.0}

    def test_audit_for_user_oldest_first(self, database):
        user_id, neighborhood_id = seed_pair()
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        with get_session() as session:
            repo = MatchRepository(session)
            for offset in (2, 0, 1):
                match = create_test_match(
                    user_id, neighborhood_id, scored_at=base + timedelta(days=offset)
                )
                repo.add_audit(create_test_audit(match))

        with get_session() as session:
            history = MatchRepository(session).audit_for_user(user_id)

        assert [entry.scored_at for entry in history] == [
            base,
            base + timedelta(days=1),
            base + timedelta(days=2),
        ]


class TestPairLockRegistry:
    """Tests for per-pair write locks."""

    def test_same_pair_shares_a_lock(self):
        registry = PairLockRegistry()
        assert registry.lock_for((1, 2)) is registry.lock_for((1, 2))
        assert registry.lock_for((1, 2)) is not registry.lock_for((2, 1))

    def test_hold_releases_all_locks(self):
        registry = PairLockRegistry()
        pairs = [(1, 3), (1, 1), (1, 2)]

        with registry.hold(pairs):
            locks = [registry.lock_for(pair) for pair in pairs]
            assert all(lock.locked() for lock in locks)

        assert not any(lock.locked() for lock in locks)

    def test_hold_releases_on_exception(self):
        registry = PairLockRegistry()
        lock = registry.lock_for((1, 1))

        with pytest.raises(RuntimeError):
            with registry.hold([(1, 1)]):
                raise RuntimeError("boom")

        assert not lock.locked()

    def test_overlapping_holders_serialize(self):
        registry = PairLockRegistry()
        order = []

        def writer(name, pairs):
            with registry.hold(pairs):
                order.append(f"{name}-start")
                time.sleep(0.05)
                order.append(f"{name}-end")

        first = threading.Thread(target=writer, args=("a", [(1, 1), (1, 2)]))
        second = threading.Thread(target=writer, args=("b", [(1, 2), (1, 1)]))
        first.start()
        second.start()
        first.join(timeout=5)
        second.join(timeout=5)

        assert len(order) == 4
        assert order[0].endswith("start") and order[1].endswith("end")
        assert order[0][0] == order[1][0]

    def test_unused_locks_are_released(self):
        registry = PairLockRegistry()
        with registry.hold([(1, 1), (1, 2)]):
            assert len(registry) == 2

        assert len(registry) == 0


# Helper functions for creating test fixtures


def create_test_user(**overrides) -> User:
    """Create a test User instance with defaults."""
    fields = dict(
        name="Test User",
        email="test.user@example.com",
        age=30,
        marital_status=MaritalStatus.SINGLE,
        lifestyle_preferences={LifestyleTag.URBAN, LifestyleTag.YOUNG_PROFESSIONAL},
        hobbies={Hobby.FITNESS},
        family_status=FamilyStatus.SINGLE,
        transportation_preference=TransportationPreference.PUBLIC_TRANSIT,
        preferred_location_type=LocationType.CITY_CENTER,
        max_commute_time_minutes=30,
        max_distance_miles=10,
        min_budget=300000,
        max_budget=600000,
    )
    fields.update(overrides)
    return User(**fields)


def create_test_neighborhood(**overrides) -> Neighborhood:
    """Create a test Neighborhood instance with defaults."""
    fields = dict(
        name="Test Heights",
        city="Springfield",
        state="IL",
        median_age=33,
        median_home_value=450000,
        safety_score=7.5,
        lifestyle_characteristics={LifestyleTag.URBAN},
    )
    fields.update(overrides)
    return Neighborhood(**fields)


def create_test_match(
    user_id,
    neighborhood_id,
    overall_score=0.7,
    match_strength=MatchStrength.GOOD,
    scored_at=None,
) -> Match:
    """Create a test Match instance with defaults."""
    scored_at = scored_at or datetime.now(timezone.utc)
    return Match(
        user_id=user_id,
        neighborhood_id=neighborhood_id,
        lifestyle_score=0.6,
        demographic_score=0.7,
        location_score=0.8,
        budget_score=0.9,
        overall_score=overall_score,
        match_strength=match_strength,
        scoring_version="2025.1",
        created_at=scored_at,
        updated_at=scored_at,
    )


def create_test_audit(match: Match) -> MatchScoreAudit:
    return MatchScoreAudit(
        user_id=match.user_id,
        neighborhood_id=match.neighborhood_id,
        lifestyle_score=match.lifestyle_score,
        demographic_score=match.demographic_score,
        location_score=match.location_score,
        budget_score=match.budget_score,
        overall_score=match.overall_score,
        match_strength=match.match_strength,
        scoring_version=match.scoring_version,
        scored_at=match.updated_at,
    )


def seed_pair():
    """Store one user and one neighborhood; return their ids."""
    user_id, ids = seed_user_with_neighborhoods(1)
    return user_id, ids[0]


def seed_user_with_neighborhoods(count):
    with get_session() as session:
        user = UserRepository(session).add(create_test_user())
        repo = NeighborhoodRepository(session)
        ids = [repo.add(create_test_neighborhood(name=f"Area {i}")).id for i in range(count)]
    return user.id, ids
