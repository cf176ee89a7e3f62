from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class CatalogRecord(BaseModel):
    """Base for records returned by the catalog API.

    Records are immutable once built and every field has a zero value,
    so a failed fetch can be replaced by an empty record. JSON null
    decodes to that zero value instead of failing the whole record.
    """
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def null_to_zero_value(cls, value, info: ValidationInfo):
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value


class VodType(CatalogRecord):
    """VOD category (e.g. 'Race Highlights')"""
    name: str = ""
    content_urls: list[str] = Field(default_factory=list, description="Episode identifiers")


class VodTypeList(CatalogRecord):
    objects: list[VodType] = Field(default_factory=list)


class Episode(CatalogRecord):
    """Single VOD episode"""
    uid: str = ""
    title: str = ""
    subtitle: str = ""
    synopsis: str = ""
    data_source_id: str = Field("", description="Encodes year and race number, e.g. '19050123'")
    driver_urls: list[str] = Field(default_factory=list)
    team_urls: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list, description="Playable asset identifiers")


class Driver(CatalogRecord):
    first_name: str = ""
    last_name: str = ""
    driver_racingnumber: int = 0


class Team(CatalogRecord):
    name: str = ""


class Season(CatalogRecord):
    uid: str = ""
    name: str = ""
    year: int = 0
    eventoccurrence_urls: list[str] = Field(default_factory=list)


class SeasonList(CatalogRecord):
    seasons: list[Season] = Field(default_factory=list, alias="objects")


class Event(CatalogRecord):
    """Race weekend (e.g. 'Formula 1 Rolex Australian Grand Prix 2019')"""
    uid: str = ""
    name: str = ""
    official_name: str = ""
    start_date: str = ""
    end_date: str = ""
    sessionoccurrence_urls: list[str] = Field(default_factory=list)


class Session(CatalogRecord):
    """Session of an event (FP1, Qualifying, Race, ...)"""
    uid: str = ""
    name: str = ""
    session_name: str = ""
    status: str = Field("", description="'upcoming', 'live', 'replay', ...")
    slug: str = ""


class Channel(CatalogRecord):
    """Camera or data perspective of a session"""
    uid: str = ""
    name: str = ""
    self_url: str = Field("", alias="self", description="Identifier used to resolve the stream")
    driver_urls: list[Driver] = Field(default_factory=list)


class SessionStreamObject(CatalogRecord):
    uid: str = ""
    name: str = ""
    channel_urls: list[Channel] = Field(default_factory=list)


class SessionStreams(CatalogRecord):
    objects: list[SessionStreamObject] = Field(default_factory=list)

    @property
    def channels(self) -> list[Channel]:
        """Perspectives of the first stream object, the only one the API fills"""
        if not self.objects:
            return []
        return list(self.objects[0].channel_urls)
