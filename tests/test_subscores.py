"""Unit tests for the subscore calculators."""

import pytest

from neighborfit.config.models import DEFAULT_SCORING_CONFIG, BudgetSettings, ScoringConfig
from neighborfit.domain.enums import (
    Amenity,
    FamilyStatus,
    Hobby,
    LifestyleTag,
    LocationType,
    MaritalStatus,
    TransportationOption,
    TransportationPreference,
)
from neighborfit.domain.models import Neighborhood, User
from neighborfit.matching.affinity import household_affinity_tags, wanted_amenities
from neighborfit.matching.subscores import (
    SUBSCORE_CALCULATORS,
    budget_score,
    commute_term,
    demographic_score,
    estimated_cost,
    jaccard,
    lifestyle_score,
    location_score,
    location_terms,
    mobility_term,
)

CONFIG = DEFAULT_SCORING_CONFIG


def make_user(**overrides) -> User:
    fields = dict(
        id=1,
        name="Test User",
        email="test.user@example.com",
        age=30,
        marital_status=MaritalStatus.SINGLE,
        lifestyle_preferences={LifestyleTag.URBAN},
        hobbies={Hobby.READING},
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


def make_neighborhood(**overrides) -> Neighborhood:
    fields = dict(
        id=1,
        name="Test Heights",
        city="Springfield",
        state="IL",
        median_age=30,
        lifestyle_characteristics={LifestyleTag.URBAN},
        amenities={Amenity.LIBRARIES, Amenity.COFFEE_SHOPS},
        commute_time_minutes=20,
        transit_score=80,
        safety_score=8.0,
        school_rating=6.0,
        median_home_value=450000,
    )
    fields.update(overrides)
    return Neighborhood(**fields)


def bare_neighborhood(**overrides) -> Neighborhood:
    fields = dict(id=2, name="Unknown", city="Nowhere", state="NA")
    fields.update(overrides)
    return Neighborhood(**fields)


class TestHelpers:
    """Test the set helpers and affinity tables."""

    def test_jaccard_of_identical_sets(self):
        assert jaccard({1, 2}, {2, 1}) == 1.0

    def test_jaccard_partial_overlap(self):
        assert jaccard({1, 2}, {2, 3}) == pytest.approx(1 / 3)

    def test_jaccard_of_two_empty_sets_is_zero(self):
        assert jaccard(set(), set()) == 0.0

    def test_wanted_amenities_is_union_of_hobby_affinities(self):
        wanted = wanted_amenities({Hobby.READING, Hobby.ART})
        assert wanted == {
            Amenity.LIBRARIES,
            Amenity.COFFEE_SHOPS,
            Amenity.MUSEUMS,
            Amenity.THEATERS,
        }

    def test_household_tags_include_marital_status(self):
        tags = household_affinity_tags(FamilyStatus.EMPTY_NESTER, MaritalStatus.WIDOWED)
        assert LifestyleTag.RETIREMENT_COMMUNITY in tags
        assert LifestyleTag.QUIET in tags

    def test_calculator_table_matches_weights(self):
        assert set(SUBSCORE_CALCULATORS) == set(CONFIG.weights.as_dict())


class TestLifestyleScore:
    """Test lifestyle tag overlap and hobby coverage."""

    def test_full_overlap_scores_one(self):
        assert lifestyle_score(make_user(), make_neighborhood(), CONFIG) == pytest.approx(1.0)

    def test_blends_tag_overlap_and_amenity_coverage(self):
        user = make_user(
            lifestyle_preferences={LifestyleTag.URBAN, LifestyleTag.YOUNG_PROFESSIONAL},
            hobbies={Hobby.FITNESS, Hobby.TRAVEL, Hobby.MUSIC},
        )
        neighborhood = make_neighborhood(
            lifestyle_characteristics={LifestyleTag.URBAN, LifestyleTag.UNIVERSITY_TOWN},
            amenities={Amenity.RESTAURANTS, Amenity.COFFEE_SHOPS, Amenity.LIBRARIES, Amenity.BARS},
        )

        # Tag overlap 1/3, two of the eight wanted amenities present
        expected = 0.7 * (1 / 3) + 0.3 * (2 / 8)
        assert lifestyle_score(user, neighborhood, CONFIG) == pytest.approx(expected)

    def test_no_overlap_scores_zero(self):
        user = make_user(lifestyle_preferences={LifestyleTag.RURAL}, hobbies={Hobby.HIKING})
        neighborhood = make_neighborhood(amenities={Amenity.BARS})

        assert lifestyle_score(user, neighborhood, CONFIG) == 0.0

    def test_sparse_profile_uses_baseline(self):
        user = make_user(lifestyle_preferences=set(), hobbies=set())
        assert lifestyle_score(user, make_neighborhood(), CONFIG) == pytest.approx(0.5)


class TestDemographicScore:
    """Test age proximity and household affinity."""

    def test_same_age_and_household_mismatch(self):
        # SINGLE household wants UNIVERSITY_TOWN or YOUNG_PROFESSIONAL, neighborhood is URBAN only
        assert demographic_score(make_user(), make_neighborhood(), CONFIG) == pytest.approx(0.7)

    def test_household_match_scores_one(self):
        neighborhood = make_neighborhood(
            lifestyle_characteristics={LifestyleTag.URBAN, LifestyleTag.YOUNG_PROFESSIONAL}
        )
        assert demographic_score(make_user(), neighborhood, CONFIG) == pytest.approx(1.0)

    def test_age_gap_decays_linearly(self):
        neighborhood = make_neighborhood(
            median_age=45, lifestyle_characteristics={LifestyleTag.YOUNG_PROFESSIONAL}
        )
        # Gap of 15 years over a 30 year normalization
        assert demographic_score(make_user(), neighborhood, CONFIG) == pytest.approx(
            0.5 * 0.5 + 0.5 * 1.0
        )

    def test_large_age_gap_clamps_to_zero(self):
        user = make_user(age=80)
        neighborhood = make_neighborhood(
            median_age=25, lifestyle_characteristics={LifestyleTag.YOUNG_PROFESSIONAL}
        )
        assert demographic_score(user, neighborhood, CONFIG) == pytest.approx(0.5)

    def test_missing_data_is_neutral(self):
        assert demographic_score(make_user(), bare_neighborhood(), CONFIG) == pytest.approx(0.5)


class TestLocationScore:
    """Test commute, mobility, safety, location type and school terms."""

    def test_reference_profile(self):
        # commute 1.0, transit 0.8, safety 0.8, location type 1.0 over weights .85
        expected = (0.30 * 1.0 + 0.20 * 0.8 + 0.25 * 0.8 + 0.10 * 1.0) / 0.85
        assert location_score(make_user(), make_neighborhood(), CONFIG) == pytest.approx(expected)

    def test_school_term_only_for_households_with_children(self):
        single = location_terms(make_user(), make_neighborhood(), CONFIG)
        family = location_terms(
            make_user(family_status=FamilyStatus.WITH_CHILDREN), make_neighborhood(), CONFIG
        )

        assert "school" not in single
        assert family["school"] == (pytest.approx(0.6), 0.15)

    def test_school_rating_changes_family_score_only(self):
        family = make_user(family_status=FamilyStatus.WITH_CHILDREN)
        good_schools = make_neighborhood(school_rating=10.0)
        poor_schools = make_neighborhood(school_rating=1.0)

        assert location_score(family, good_schools, CONFIG) > location_score(
            family, poor_schools, CONFIG
        )
        assert location_score(make_user(), good_schools, CONFIG) == pytest.approx(
            location_score(make_user(), poor_schools, CONFIG)
        )

    def test_commute_within_limit_scores_one(self):
        assert commute_term(make_user(), make_neighborhood(commute_time_minutes=30), CONFIG) == 1.0

    def test_commute_decays_to_zero_at_twice_the_limit(self):
        user = make_user()
        assert commute_term(user, make_neighborhood(commute_time_minutes=45), CONFIG) == pytest.approx(0.5)
        assert commute_term(user, make_neighborhood(commute_time_minutes=60), CONFIG) == 0.0
        assert commute_term(user, make_neighborhood(commute_time_minutes=90), CONFIG) == 0.0

    @pytest.mark.parametrize(
        "options,expected",
        [
            (set(), 0.5),
            ({TransportationOption.PARKING}, 0.75),
            ({TransportationOption.HIGHWAY_ACCESS, TransportationOption.BUS}, 0.75),
            ({TransportationOption.PARKING, TransportationOption.HIGHWAY_ACCESS}, 1.0),
        ],
    )
    def test_car_mobility_uses_parking_and_highway(self, options, expected):
        user = make_user(transportation_preference=TransportationPreference.CAR)
        neighborhood = make_neighborhood(transportation_options=options)
        assert mobility_term(user, neighborhood, CONFIG) == pytest.approx(expected)

    def test_walking_and_biking_use_their_scores(self):
        neighborhood = make_neighborhood(walk_score=90, bike_score=40)
        walker = make_user(transportation_preference=TransportationPreference.WALKING)
        cyclist = make_user(transportation_preference=TransportationPreference.BIKING)

        assert mobility_term(walker, neighborhood, CONFIG) == pytest.approx(0.9)
        assert mobility_term(cyclist, neighborhood, CONFIG) == pytest.approx(0.4)

    def test_mixed_mobility_averages_known_scores(self):
        user = make_user(transportation_preference=TransportationPreference.MIXED)
        neighborhood = make_neighborhood(walk_score=60, bike_score=None, transit_score=80)
        assert mobility_term(user, neighborhood, CONFIG) == pytest.approx(0.7)

    def test_missing_data_is_neutral(self):
        assert location_score(make_user(), bare_neighborhood(), CONFIG) == pytest.approx(0.5)


class TestBudgetScore:
    """Test budget fit with the tolerance band."""

    @pytest.mark.parametrize(
        "home_value,expected",
        [
            (450000, 1.0),
            (300000, 1.0),
            (600000, 1.0),
            (675000, 0.5),
            (750000, 0.0),
            (900000, 0.0),
            (262500, 0.5),
            (225000, 0.0),
        ],
    )
    def test_tolerance_band(self, home_value, expected):
        neighborhood = make_neighborhood(median_home_value=home_value)
        assert budget_score(make_user(), neighborhood, CONFIG) == pytest.approx(expected)

    def test_score_falls_as_price_rises_above_budget(self):
        user = make_user()
        scores = [
            budget_score(user, make_neighborhood(median_home_value=value), CONFIG)
            for value in (600000, 640000, 680000, 720000, 760000)
        ]
        assert scores == sorted(scores, reverse=True)
        assert all(0.0 <= score <= 1.0 for score in scores)

    def test_cost_estimated_from_rent_when_home_value_missing(self):
        neighborhood = make_neighborhood(median_home_value=None, median_rent=2000)

        assert estimated_cost(neighborhood, CONFIG) == 2000 * 12 * 15
        assert budget_score(make_user(), neighborhood, CONFIG) == 1.0

    def test_missing_cost_is_neutral(self):
        assert budget_score(make_user(), bare_neighborhood(), CONFIG) == pytest.approx(0.5)

    def test_zero_budget_scores_zero_above_it(self):
        user = make_user(min_budget=0, max_budget=0)
        assert budget_score(user, make_neighborhood(median_home_value=1), CONFIG) == 0.0

    def test_tolerance_is_configurable(self):
        config = ScoringConfig(budget=BudgetSettings(tolerance=0.5))
        neighborhood = make_neighborhood(median_home_value=750000)
        assert budget_score(make_user(), neighborhood, config) == pytest.approx(0.5)


class TestScoreBounds:
    """Every calculator stays inside [0, 1] across varied profiles."""

    @pytest.mark.parametrize("name", sorted(SUBSCORE_CALCULATORS))
    def test_calculators_stay_in_unit_interval(self, name):
        calculator = SUBSCORE_CALCULATORS[name]
        users = [
            make_user(),
            make_user(
                age=90,
                family_status=FamilyStatus.WITH_CHILDREN,
                transportation_preference=TransportationPreference.CAR,
                lifestyle_preferences=set(),
                hobbies=set(),
            ),
            make_user(min_budget=0, max_budget=0, max_commute_time_minutes=1),
        ]
        neighborhoods = [
            make_neighborhood(),
            bare_neighborhood(),
            make_neighborhood(
                median_age=0,
                commute_time_minutes=500,
                safety_score=10,
                school_rating=0,
                median_home_value=5000000,
            ),
        ]

        for user in users:
            for neighborhood in neighborhoods:
                value = calculator(user, neighborhood, CONFIG)
                assert 0.0 <= value <= 1.0, f"{name} out of range for {user.name}/{neighborhood.name}"
