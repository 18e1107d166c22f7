"""Fixed lookup tables relating user attributes to neighborhood tags."""

from typing import Dict, FrozenSet

from neighborfit.domain.enums import (
    Amenity,
    FamilyStatus,
    Hobby,
    LifestyleTag,
    LocationType,
    MaritalStatus,
)

# Amenities a hobby makes a user look for
HOBBY_AMENITY_AFFINITY: Dict[Hobby, FrozenSet[Amenity]] = {
    Hobby.FITNESS: frozenset({Amenity.GYMS, Amenity.PARKS, Amenity.SPORTS_FACILITIES}),
    Hobby.TRAVEL: frozenset({Amenity.RESTAURANTS, Amenity.MUSEUMS}),
    Hobby.MUSIC: frozenset({Amenity.MUSIC_VENUES, Amenity.BARS, Amenity.THEATERS}),
    Hobby.SPORTS: frozenset({Amenity.SPORTS_FACILITIES, Amenity.PARKS, Amenity.GYMS}),
    Hobby.GARDENING: frozenset(
        {Amenity.COMMUNITY_GARDENS, Amenity.PARKS, Amenity.FARMERS_MARKETS}
    ),
    Hobby.COOKING: frozenset({Amenity.GROCERY_STORES, Amenity.FARMERS_MARKETS}),
    Hobby.READING: frozenset({Amenity.LIBRARIES, Amenity.COFFEE_SHOPS}),
    Hobby.PHOTOGRAPHY: frozenset({Amenity.PARKS, Amenity.MUSEUMS, Amenity.HIKING_TRAILS}),
    Hobby.ART: frozenset({Amenity.MUSEUMS, Amenity.THEATERS}),
    Hobby.HIKING: frozenset({Amenity.HIKING_TRAILS, Amenity.PARKS}),
    Hobby.GAMING: frozenset({Amenity.COFFEE_SHOPS, Amenity.SHOPPING_CENTERS}),
    Hobby.DINING: frozenset({Amenity.RESTAURANTS, Amenity.BARS, Amenity.COFFEE_SHOPS}),
}

FAMILY_STATUS_AFFINITY: Dict[FamilyStatus, FrozenSet[LifestyleTag]] = {
    FamilyStatus.WITH_CHILDREN: frozenset({LifestyleTag.FAMILY_FRIENDLY}),
    FamilyStatus.SINGLE: frozenset(
        {LifestyleTag.UNIVERSITY_TOWN, LifestyleTag.YOUNG_PROFESSIONAL}
    ),
    FamilyStatus.COUPLE: frozenset({LifestyleTag.YOUNG_PROFESSIONAL, LifestyleTag.URBAN}),
    FamilyStatus.EMPTY_NESTER: frozenset(
        {LifestyleTag.QUIET, LifestyleTag.RETIREMENT_COMMUNITY}
    ),
    FamilyStatus.RETIRED: frozenset({LifestyleTag.RETIREMENT_COMMUNITY}),
}

# Extends the family-status affinity; statuses not listed add nothing
MARITAL_STATUS_AFFINITY: Dict[MaritalStatus, FrozenSet[LifestyleTag]] = {
    MaritalStatus.SINGLE: frozenset({LifestyleTag.YOUNG_PROFESSIONAL}),
    MaritalStatus.WIDOWED: frozenset({LifestyleTag.RETIREMENT_COMMUNITY}),
}

LOCATION_TYPE_TAGS: Dict[LocationType, LifestyleTag] = {
    LocationType.CITY_CENTER: LifestyleTag.URBAN,
    LocationType.SUBURB: LifestyleTag.SUBURBAN,
    LocationType.RURAL: LifestyleTag.RURAL,
    LocationType.UNIVERSITY_AREA: LifestyleTag.UNIVERSITY_TOWN,
}


def wanted_amenities(hobbies) -> FrozenSet[Amenity]:
    """Union of the amenities implied by a set of hobbies."""
    wanted = set()
    for hobby in hobbies:
        wanted.update(HOBBY_AMENITY_AFFINITY.get(hobby, frozenset()))
    return frozenset(wanted)


def household_affinity_tags(
    family_status: FamilyStatus, marital_status: MaritalStatus
) -> FrozenSet[LifestyleTag]:
    """Neighborhood tags that suit a household's family and marital status."""
    return FAMILY_STATUS_AFFINITY.get(family_status, frozenset()) | MARITAL_STATUS_AFFINITY.get(
        marital_status, frozenset()
    )
