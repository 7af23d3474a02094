from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator


class DateRange(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    start: dict[str, Any] | str | None = Field(default=None, validation_alias=AliasChoices("start", "startDate"))
    end: dict[str, Any] | str | None = Field(default=None, validation_alias=AliasChoices("end", "endDate"))


class Experience(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: str | None = None
    organization: str | None = Field(
        default=None, validation_alias=AliasChoices("organization", "companyName", "company")
    )
    description: str | None = None
    date_range: DateRange | None = Field(
        default=None, validation_alias=AliasChoices("date_range", "dateRange", "timePeriod")
    )


class Education(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    school: str | None = Field(default=None, validation_alias=AliasChoices("school", "schoolName"))
    degree: str | None = Field(default=None, validation_alias=AliasChoices("degree", "degreeName"))
    field_of_study: str | None = Field(default=None, validation_alias=AliasChoices("field_of_study", "fieldOfStudy"))
    date_range: DateRange | None = Field(
        default=None, validation_alias=AliasChoices("date_range", "dateRange", "timePeriod")
    )


_FREE_FORM_FIELDS = (
    "publications",
    "languages",
    "certifications",
    "honors",
    "volunteer",
    "patents",
    "test_scores",
    "organizations",
    "featured",
    "projects",
    "recommendations",
    "causes",
)

_LIST_FIELDS = ("experiences", "education", "skills", *_FREE_FORM_FIELDS)


class ProfileRecord(BaseModel):
    """
    Normalized professional profile.

    Accepts both our own field names and the raw names returned by the
    scraper (positions, educations, geoCountryName, ...). Unknown raw fields
    are kept as extras so nothing the scraper returned is lost on persistence.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, coerce_numbers_to_str=True)

    # Identity
    profile_id: str | None = Field(
        default=None, validation_alias=AliasChoices("profile_id", "profileId", "id", "publicIdentifier")
    )
    url: str | None = Field(default=None, validation_alias=AliasChoices("url", "linkedinUrl"))
    input_url: str | None = Field(default=None, validation_alias=AliasChoices("input_url", "inputUrl"))

    # Descriptive
    first_name: str | None = Field(default=None, validation_alias=AliasChoices("first_name", "firstName"))
    last_name: str | None = Field(default=None, validation_alias=AliasChoices("last_name", "lastName"))
    headline: str | None = None
    summary: str | None = Field(default=None, validation_alias=AliasChoices("summary", "about"))
    country: str | None = Field(
        default=None, validation_alias=AliasChoices("country", "geoCountryName", "geoLocationName", "countryCode")
    )

    # Repeated sections
    experiences: list[Experience] = Field(
        default_factory=list, validation_alias=AliasChoices("experiences", "positions", "experience")
    )
    education: list[Education] = Field(default_factory=list, validation_alias=AliasChoices("education", "educations"))
    skills: list[str] = Field(default_factory=list)

    # Optional sections
    publications: list[dict[str, Any]] = Field(default_factory=list)
    languages: list[dict[str, Any]] = Field(default_factory=list)
    certifications: list[dict[str, Any]] = Field(
        default_factory=list, validation_alias=AliasChoices("certifications", "certificates")
    )
    honors: list[dict[str, Any]] = Field(default_factory=list, validation_alias=AliasChoices("honors", "honorsAwards"))
    volunteer: list[dict[str, Any]] = Field(
        default_factory=list, validation_alias=AliasChoices("volunteer", "volunteerExperiences")
    )
    patents: list[dict[str, Any]] = Field(default_factory=list)
    test_scores: list[dict[str, Any]] = Field(
        default_factory=list, validation_alias=AliasChoices("test_scores", "testScores")
    )
    organizations: list[dict[str, Any]] = Field(default_factory=list)
    featured: list[dict[str, Any]] = Field(default_factory=list)
    projects: list[dict[str, Any]] = Field(default_factory=list)
    recommendations: list[dict[str, Any]] = Field(default_factory=list)
    causes: list[dict[str, Any]] = Field(default_factory=list)

    # Contact signals
    followers_count: int | None = Field(
        default=None, validation_alias=AliasChoices("followers_count", "followersCount")
    )
    connections_count: int | None = Field(
        default=None, validation_alias=AliasChoices("connections_count", "connectionsCount")
    )
    picture_url: str | None = Field(default=None, validation_alias=AliasChoices("picture_url", "pictureUrl"))

    @model_validator(mode="before")
    @classmethod
    def _drop_null_lists(cls, data: Any) -> Any:
        # Scrapers return null for empty sections; treat those as missing
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @field_validator(*_LIST_FIELDS, mode="before")
    @classmethod
    def _ensure_list(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            value = [value]
        items = [item for item in value if item is not None]

        if info.field_name == "skills":
            names = []
            for skill in items:
                if isinstance(skill, dict):
                    name = skill.get("name") or skill.get("title")
                    if name:
                        names.append(str(name))
                elif skill:
                    names.append(str(skill))
            return names
        if info.field_name in _FREE_FORM_FIELDS:
            # Some sections come back as plain strings, e.g. languages: ["English"]
            return [item if isinstance(item, dict) else {"name": item} for item in items]
        return items

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)
