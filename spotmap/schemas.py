"""
Request schemas.

Bodies arrive in camelCase (``locationLat``, ``isPublic``) and are exposed
as snake_case attributes that line up with the ORM columns, so handlers can
pass ``model_dump()`` straight into a model constructor.
"""
import datetime
from typing import Annotated, ClassVar, List, Literal, Optional, Tuple

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

SpotType = Literal["downhill", "freeride", "freestyle", "cruising", "dancing", "pumping"]
Difficulty = Literal["beginner", "intermediate", "advanced", "expert"]
Visibility = Literal["public", "private", "friends"]
SpotStatus = Literal["draft", "pending", "approved", "rejected"]
Frequency = Literal["daily", "weekly", "monthly"]
ContentType = Literal["spot", "event", "collection"]
ModerationStatus = Literal["pending", "approved", "rejected"]


def reject_non_numeric(value):
    # "45.2" or true must not be coerced into a bounded number
    if isinstance(value, (str, bytes, bool)):
        raise ValueError("must be a number")
    return value


Latitude = Annotated[float, BeforeValidator(reject_non_numeric), Field(ge=-90, le=90)]
Longitude = Annotated[float, BeforeValidator(reject_non_numeric), Field(ge=-180, le=180)]
Number = Annotated[float, BeforeValidator(reject_non_numeric)]
WholeNumber = Annotated[int, BeforeValidator(reject_non_numeric)]


def to_naive_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Normalize aware datetimes to naive UTC; naive input is taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PartialModel(CamelModel):
    """
    Base for update payloads: every field is optional, but fields backed by
    NOT NULL columns may not be explicitly set to null.
    """
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_null_required(self):
        nulls = [f for f in self.non_nullable if f in self.model_fields_set and getattr(self, f) is None]
        if nulls:
            raise ValueError(f"{', '.join(to_camel(f) for f in nulls)} cannot be null")
        return self


# ---------- Spots ----------
class SpotCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    location_lat: Latitude
    location_lng: Longitude
    spot_type: SpotType
    difficulty: Difficulty
    visibility: Visibility = "public"
    start_lat: Optional[Latitude] = None
    start_lng: Optional[Longitude] = None
    end_lat: Optional[Latitude] = None
    end_lng: Optional[Longitude] = None
    best_times: Optional[str] = Field(None, max_length=500)
    safety_notes: Optional[str] = Field(None, max_length=1000)
    rules: Optional[str] = Field(None, max_length=1000)
    photos: List[str] = Field(default_factory=list)


class SpotUpdate(PartialModel):
    non_nullable = ("name", "location_lat", "location_lng", "spot_type", "difficulty",
                    "visibility", "photos", "status")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    location_lat: Optional[Latitude] = None
    location_lng: Optional[Longitude] = None
    spot_type: Optional[SpotType] = None
    difficulty: Optional[Difficulty] = None
    visibility: Optional[Visibility] = None
    start_lat: Optional[Latitude] = None
    start_lng: Optional[Longitude] = None
    end_lat: Optional[Latitude] = None
    end_lng: Optional[Longitude] = None
    best_times: Optional[str] = Field(None, max_length=500)
    safety_notes: Optional[str] = Field(None, max_length=1000)
    rules: Optional[str] = Field(None, max_length=1000)
    photos: Optional[List[str]] = None
    status: Optional[SpotStatus] = None


# ---------- Events ----------
class RecurrenceData(CamelModel):
    frequency: Frequency
    interval: WholeNumber = Field(..., ge=1, le=12)
    end_date: Optional[datetime.datetime] = None


class EventTimes(CamelModel):
    @field_validator("start_time", "end_time", mode="after", check_fields=False)
    @classmethod
    def normalize_utc(cls, value):
        return to_naive_utc(value)


class EventCreate(EventTimes):
    spot_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: datetime.datetime
    end_time: datetime.datetime
    is_recurring: bool = False
    recurrence_data: Optional[RecurrenceData] = None
    photos: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_schedule(self):
        if self.start_time >= self.end_time:
            raise ValueError("startTime must be before endTime")
        if self.is_recurring and self.recurrence_data is None:
            raise ValueError("recurrenceData is required when isRecurring is true")
        return self


class EventUpdate(EventTimes, PartialModel):
    non_nullable = ("title", "start_time", "end_time", "is_recurring", "photos")

    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    start_time: Optional[datetime.datetime] = None
    end_time: Optional[datetime.datetime] = None
    is_recurring: Optional[bool] = None
    recurrence_data: Optional[RecurrenceData] = None
    photos: Optional[List[str]] = None


# ---------- Collections ----------
class UniqueSpotIds(CamelModel):
    @field_validator("spot_ids", check_fields=False)
    @classmethod
    def no_duplicates(cls, value):
        if value is not None and len(set(value)) != len(value):
            raise ValueError("spotIds must not contain duplicates")
        return value


class CollectionCreate(UniqueSpotIds):
    name: str = Field(..., min_length=1, max_length=100)
    spot_ids: List[str] = Field(default_factory=list)
    is_public: bool = False


class CollectionUpdate(UniqueSpotIds, PartialModel):
    non_nullable = ("name", "spot_ids", "is_public")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    spot_ids: Optional[List[str]] = None
    is_public: Optional[bool] = None


class SpotAction(CamelModel):
    spot_id: str = Field(..., min_length=1)


# ---------- Moderation ----------
class ModerationCreate(CamelModel):
    content_type: ContentType
    content_id: str = Field(..., min_length=1)


class ModerationAction(CamelModel):
    action: Literal["approve", "reject"]
    feedback: Optional[str] = Field(None, max_length=1000)


# ---------- Places / geocoding ----------
class LatLng(CamelModel):
    lat: Latitude
    lng: Longitude


class PlacesSearch(CamelModel):
    location: LatLng
    radius: Number = Field(..., ge=1, le=50000)
    types: Optional[List[str]] = None
    max_results: WholeNumber = Field(10, ge=1, le=20)
    query: Optional[str] = None
    min_rating: Optional[Number] = Field(None, ge=0, le=5)
    open_now: Optional[bool] = None


class GeocodeRequest(CamelModel):
    address: str = Field(..., min_length=1, max_length=500)
