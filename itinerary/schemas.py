from __future__ import annotations

import datetime as dt
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# ------- Geography -------
class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    name: Optional[str] = None

class District(BaseModel):
    id: str
    name: str
    description: str = ""
    coordinates: Location
    area_km2: float = 0.0
    transportation: List[str] = Field(default_factory=list)
    landmarks: List[str] = Field(default_factory=list)

# ------- Shared POI building blocks -------
class Price(BaseModel):
    amount: float = 0.0
    currency: str = "CNY"
    notes: str = ""

class PriceRange(BaseModel):
    min: float
    max: float
    currency: str = "CNY"
    level: str = ""          # economy | mid_range | high_end
    notes: str = ""

    @property
    def average(self) -> float:
        return (self.min + self.max) / 2

class BreakTime(BaseModel):
    start: str
    end: str

class Hours(BaseModel):
    start: str = ""
    end: str = ""
    notes: str = ""
    break_time: Optional[BreakTime] = None

class Contact(BaseModel):
    phone: str = ""
    address: str = ""
    email: str = ""

class Room(BaseModel):
    type: str
    size_sqm: float = 0.0
    price: float
    features: List[str] = Field(default_factory=list)

class AirportTransfer(BaseModel):
    taxi_time: str = ""
    distance_km: float = 0.0

class Transport(BaseModel):
    from_airport: AirportTransfer = Field(default_factory=AirportTransfer)
    nearby_stations: List[str] = Field(default_factory=list)

class RecommendedTime(BaseModel):
    hours: float = 2
    best_times: List[str] = Field(default_factory=list)

# ------- POI variants -------
class PointOfInterest(BaseModel):
    id: str
    name: str
    district_id: str = ""
    description: str = ""
    coordinates: Location
    rating: float = 0.0

class Attraction(PointOfInterest):
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    price: Price = Field(default_factory=Price)
    opening_hours: Hours = Field(default_factory=Hours)
    recommended_time: RecommendedTime = Field(default_factory=RecommendedTime)
    highlights: List[str] = Field(default_factory=list)
    crowd_level: Dict[str, str] = Field(default_factory=dict)
    indoor: bool = False

class Restaurant(PointOfInterest):
    cuisine_type: str
    price_range: PriceRange
    opening_hours: Hours = Field(default_factory=Hours)
    signature_dishes: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)
    reservations_required: bool = False
    contact: Contact = Field(default_factory=Contact)

class Hotel(PointOfInterest):
    category: str = ""       # five_star | four_star | boutique | ...
    price_range: PriceRange
    rooms: List[Room] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    transportation: Transport = Field(default_factory=Transport)
    contact: Contact = Field(default_factory=Contact)

# ------- Weather -------
class Conditions(BaseModel):
    day: str
    night: str = ""

class Temperature(BaseModel):
    max: float
    min: float
    unit: str = "C"

class Range(BaseModel):
    max: float = 0.0
    min: float = 0.0
    unit: str = ""

class Wind(BaseModel):
    direction: str = ""
    speed: Range = Field(default_factory=lambda: Range(unit="km/h"))

class Precipitation(BaseModel):
    probability: float = 0.0   # percent, 0-100
    amount: float = 0.0
    unit: str = "mm"

class AirQuality(BaseModel):
    aqi: int = 0
    level: str = ""
    primary_pollutant: str = ""

class DailyForecast(BaseModel):
    date: dt.date
    weather: Conditions
    temperature: Temperature
    humidity: Range = Field(default_factory=Range)
    wind: Wind = Field(default_factory=Wind)
    precipitation: Precipitation = Field(default_factory=Precipitation)
    air_quality: AirQuality = Field(default_factory=AirQuality)

class Notice(BaseModel):
    type: str
    content: str

class WeatherForecast(BaseModel):
    city: str = ""
    update_time: Optional[dt.datetime] = None
    source: str = ""
    daily_forecasts: List[DailyForecast] = Field(default_factory=list)
    special_notices: List[Notice] = Field(default_factory=list)

# ------- Request models -------
class Budget(BaseModel):
    """Per-category budget. ``None`` marks a category as unconstrained."""

    total: Optional[float] = None
    hotel_per_night: Optional[float] = None
    food_per_day: Optional[float] = None        # per person
    activity_per_day: Optional[float] = None    # per person

class TripPreferences(BaseModel):
    activities: List[str] = Field(default_factory=list)
    cuisine: List[str] = Field(default_factory=list)
    hotel: List[str] = Field(default_factory=list)

class TripRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    start_date: dt.date
    end_date: dt.date
    location: Location
    budget: Budget = Field(default_factory=Budget)
    preferences: TripPreferences = Field(default_factory=TripPreferences)
    party_size: int = 1
    requirements: List[str] = Field(default_factory=list)

class AccommodationRequest(BaseModel):
    location: Location
    radius_km: float = 2.0
    budget_per_night: Optional[float] = None
    guest_count: int = 1
    categories: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)   # amenities
    requirements: List[str] = Field(default_factory=list)  # room features

class DiningRequest(BaseModel):
    location: Location
    radius_km: float = 3.0
    budget_per_person: Optional[float] = None
    cuisine: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)   # features
    party_size: int = 1
    dining_time: Optional[dt.time] = None

class AttractionRequest(BaseModel):
    location: Location
    radius_km: float = 5.0
    budget: Optional[float] = None
    categories: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)   # tags
    indoor: Optional[bool] = None                           # None = any venue
    party_size: int = 1

# ------- Candidates -------
class Candidate(BaseModel):
    distance_km: float
    score: float
    reasons: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)

class RoomChoice(BaseModel):
    type: str
    price: float
    size_sqm: float = 0.0
    features: List[str] = Field(default_factory=list)
    notes: str = ""

class HotelCandidate(Candidate):
    poi: Hotel
    room_choices: List[RoomChoice] = Field(default_factory=list)

class RestaurantCandidate(Candidate):
    poi: Restaurant
    reservation_tip: str = ""

class AttractionCandidate(Candidate):
    poi: Attraction

# ------- Response models -------
class WeatherAdvice(BaseModel):
    date: dt.date
    forecast: DailyForecast
    suitable: List[str] = Field(default_factory=list)
    unsuitable: List[str] = Field(default_factory=list)
    precautions: List[str] = Field(default_factory=list)
    indoor_options: List[str] = Field(default_factory=list)
    outdoor_options: List[str] = Field(default_factory=list)
    outdoor_restricted: bool = False

class ActivityBlock(BaseModel):
    slot: Literal["morning", "afternoon", "evening"]
    start: dt.time
    type: Literal["outdoor", "indoor", "evening"]
    duration_minutes: int
    attraction: Optional[AttractionCandidate] = None
    cost: float = 0.0
    notes: List[str] = Field(default_factory=list)

class DiningSlot(BaseModel):
    slot: Literal["midday", "evening"]
    time: dt.time
    budget_per_person: Optional[float] = None
    pick: Optional[RestaurantCandidate] = None
    alternatives: List[str] = Field(default_factory=list)
    cost: float = 0.0

class DailyPlan(BaseModel):
    date: dt.date
    weather: Optional[WeatherAdvice] = None
    activities: List[ActivityBlock] = Field(default_factory=list)
    dining: List[DiningSlot] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    cost: float = 0.0

class TripOverview(BaseModel):
    duration_days: int
    total_cost: float = 0.0
    highlights: List[str] = Field(default_factory=list)

class TripPlan(BaseModel):
    overview: TripOverview
    accommodation: Optional[HotelCandidate] = None
    accommodation_cost: float = 0.0
    daily_plans: List[DailyPlan] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    narrative: Optional[str] = None
    partial: bool = False

    @property
    def duration(self) -> int:
        return self.overview.duration_days
