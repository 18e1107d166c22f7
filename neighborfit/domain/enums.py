"""Closed enumerations for every categorical profile attribute.

User lifestyle preferences and neighborhood lifestyle characteristics share
``LifestyleTag`` so that set overlap between the two is exact.
"""

from enum import Enum


class LifestyleTag(str, Enum):
    """Lifestyle descriptors shared by users (preferences) and neighborhoods (characteristics)."""

    URBAN = "URBAN"
    SUBURBAN = "SUBURBAN"
    RURAL = "RURAL"
    QUIET = "QUIET"
    NIGHTLIFE = "NIGHTLIFE"
    FAMILY_FRIENDLY = "FAMILY_FRIENDLY"
    YOUNG_PROFESSIONAL = "YOUNG_PROFESSIONAL"
    UNIVERSITY_TOWN = "UNIVERSITY_TOWN"
    RETIREMENT_COMMUNITY = "RETIREMENT_COMMUNITY"
    ARTS_AND_CULTURE = "ARTS_AND_CULTURE"
    OUTDOORS = "OUTDOORS"
    DIVERSE = "DIVERSE"


class Hobby(str, Enum):
    FITNESS = "FITNESS"
    TRAVEL = "TRAVEL"
    MUSIC = "MUSIC"
    SPORTS = "SPORTS"
    GARDENING = "GARDENING"
    COOKING = "COOKING"
    READING = "READING"
    PHOTOGRAPHY = "PHOTOGRAPHY"
    ART = "ART"
    HIKING = "HIKING"
    GAMING = "GAMING"
    DINING = "DINING"


class Amenity(str, Enum):
    RESTAURANTS = "RESTAURANTS"
    SHOPPING_CENTERS = "SHOPPING_CENTERS"
    GYMS = "GYMS"
    COFFEE_SHOPS = "COFFEE_SHOPS"
    GROCERY_STORES = "GROCERY_STORES"
    PARKS = "PARKS"
    LIBRARIES = "LIBRARIES"
    HOSPITALS = "HOSPITALS"
    BARS = "BARS"
    MUSEUMS = "MUSEUMS"
    THEATERS = "THEATERS"
    SPORTS_FACILITIES = "SPORTS_FACILITIES"
    HIKING_TRAILS = "HIKING_TRAILS"
    COMMUNITY_GARDENS = "COMMUNITY_GARDENS"
    FARMERS_MARKETS = "FARMERS_MARKETS"
    MUSIC_VENUES = "MUSIC_VENUES"


class TransportationOption(str, Enum):
    SUBWAY = "SUBWAY"
    BUS = "BUS"
    TRAIN = "TRAIN"
    BIKE_LANES = "BIKE_LANES"
    WALKING_TRAILS = "WALKING_TRAILS"
    PARKING = "PARKING"
    HIGHWAY_ACCESS = "HIGHWAY_ACCESS"


class TransportationPreference(str, Enum):
    CAR = "CAR"
    PUBLIC_TRANSIT = "PUBLIC_TRANSIT"
    WALKING = "WALKING"
    BIKING = "BIKING"
    MIXED = "MIXED"


class LocationType(str, Enum):
    CITY_CENTER = "CITY_CENTER"
    SUBURB = "SUBURB"
    RURAL = "RURAL"
    UNIVERSITY_AREA = "UNIVERSITY_AREA"


class FamilyStatus(str, Enum):
    SINGLE = "SINGLE"
    COUPLE = "COUPLE"
    WITH_CHILDREN = "WITH_CHILDREN"
    EMPTY_NESTER = "EMPTY_NESTER"
    RETIRED = "RETIRED"


class MaritalStatus(str, Enum):
    SINGLE = "SINGLE"
    MARRIED = "MARRIED"
    PARTNERED = "PARTNERED"
    DIVORCED = "DIVORCED"
    WIDOWED = "WIDOWED"


class Gender(str, Enum):
    FEMALE = "FEMALE"
    MALE = "MALE"
    NON_BINARY = "NON_BINARY"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class EducationLevel(str, Enum):
    HIGH_SCHOOL = "HIGH_SCHOOL"
    SOME_COLLEGE = "SOME_COLLEGE"
    BACHELORS = "BACHELORS"
    MASTERS = "MASTERS"
    DOCTORATE = "DOCTORATE"
    OTHER = "OTHER"


class IncomeLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"


class OccupationType(str, Enum):
    TECHNOLOGY = "TECHNOLOGY"
    HEALTHCARE = "HEALTHCARE"
    EDUCATION = "EDUCATION"
    FINANCE = "FINANCE"
    RETAIL = "RETAIL"
    GOVERNMENT = "GOVERNMENT"
    CREATIVE = "CREATIVE"
    TRADES = "TRADES"
    STUDENT = "STUDENT"
    RETIRED = "RETIRED"
    OTHER = "OTHER"


class PetPreference(str, Enum):
    NO_PETS = "NO_PETS"
    DOGS = "DOGS"
    CATS = "CATS"
    ANY_PETS = "ANY_PETS"


class MatchStrength(str, Enum):
    """Discrete classification of an overall score, best first."""

    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
