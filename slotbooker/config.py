"""
Configuration management using Pydantic models loaded from YAML.

Raw configuration is validated once at load time and then resolved into the
immutable domain objects the engine works with (``WorkingHoursPolicy``,
``BookingLink``). Nothing downstream re-reads or re-defaults these values.
"""

from pathlib import Path
from typing import Dict, List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from .domain.models import (
    Actor,
    AssignmentMethod,
    AssignmentPool,
    BookingLink,
    Commitment,
    CommitmentSource,
    MeetingSpec,
    TimeRange,
)
from .domain.timezone_math import validate_zone
from .domain.working_hours import WorkingDay, WorkingHoursPolicy, parse_clock


class WorkingDayConfig(BaseModel):
    """Working window for one weekday."""
    enabled: bool = True
    start: str = "09:00"
    end: str = "17:00"

    @field_validator("start", "end")
    @classmethod
    def validate_clock(cls, value: str) -> str:
        """Ensure the value is a valid HH:MM time."""
        parse_clock(value)
        return value

    def to_working_day(self) -> WorkingDay:
        return WorkingDay.from_strings(self.enabled, self.start, self.end)


class TimeBlockConfig(BaseModel):
    """Manual block of unavailable time."""
    start: str
    end: str
    title: str = "Unavailable"

    @model_validator(mode="after")
    def validate_range(self) -> "TimeBlockConfig":
        """Ensure the block parses and ends after it starts."""
        self.to_commitment()
        return self

    def to_commitment(self) -> Commitment:
        return Commitment(
            time_range=TimeRange(
                start=pendulum.parse(self.start, tz="UTC"),
                end=pendulum.parse(self.end, tz="UTC"),
            ),
            source=CommitmentSource.TIME_BLOCK,
        )


class ActorConfig(BaseModel):
    """Actor (potential host) configuration."""
    id: str
    name: str = ""
    email: str = ""
    timezone: str = "UTC"
    working_hours: Dict[int, WorkingDayConfig] = Field(default_factory=dict)  # 0=Sunday, 6=Saturday
    time_blocks: List[TimeBlockConfig] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return validate_zone(value)

    @field_validator("working_hours")
    @classmethod
    def validate_working_hours(cls, value: Dict[int, WorkingDayConfig]) -> Dict[int, WorkingDayConfig]:
        """Ensure weekdays are in range and every enabled day is a valid window."""
        invalid_days = [day for day in value if day not in range(7)]
        if invalid_days:
            raise ValueError(f"working_hours keys must be between 0 and 6, got {invalid_days}")
        for day_config in value.values():
            day_config.to_working_day()
        return value

    def display_name(self) -> str:
        return self.name or self.id

    def to_policy(self) -> WorkingHoursPolicy:
        """Resolve working hours, filling missing days from the default table."""
        return WorkingHoursPolicy.from_mapping(
            {day: day_config.to_working_day() for day, day_config in self.working_hours.items()}
        )

    def to_actor(self) -> Actor:
        return Actor(id=self.id, timezone=self.timezone, policy=self.to_policy())


class AvailabilityOverrideConfig(BaseModel):
    """Link-specific days and hours replacing the owner's working hours."""
    days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    start: str = "09:00"
    end: str = "17:00"

    def to_policy(self) -> WorkingHoursPolicy:
        return WorkingHoursPolicy.uniform(self.days, self.start, self.end)


class LinkConfig(BaseModel):
    """Booking link configuration."""
    id: str
    title: str = ""
    owner_id: str
    duration_minutes: int = 30
    buffer_before: int = 0
    buffer_after: int = 0
    lead_time_minutes: int = 60
    max_per_day: int = 0  # 0 = unlimited
    availability_window_days: int = 30
    timezone: Optional[str] = None  # display only, defaults to the owner's zone
    is_active: bool = True
    assignment: AssignmentMethod = AssignmentMethod.FIXED
    host_id: Optional[str] = None
    pool: List[str] = Field(default_factory=list)
    availability: Optional[AvailabilityOverrideConfig] = None

    @field_validator("duration_minutes", "availability_window_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("buffer_before", "buffer_after", "lead_time_minutes", "max_per_day")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("cannot be negative")
        return value

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else validate_zone(value)

    @field_validator("pool")
    @classmethod
    def validate_pool(cls, value: List[str]) -> List[str]:
        duplicates = sorted({actor_id for actor_id in value if value.count(actor_id) > 1})
        if duplicates:
            raise ValueError(f"Duplicate pool members: {duplicates}")
        return value

    @model_validator(mode="after")
    def validate_availability(self) -> "LinkConfig":
        """Ensure the availability override forms a valid policy."""
        if self.availability is not None:
            self.availability.to_policy()
        return self

    def resolve(self, display_timezone: str = "UTC") -> BookingLink:
        """
        Resolve this configuration into an immutable BookingLink.

        Args:
            display_timezone: Fallback display zone, normally the owner's

        Returns:
            BookingLink with every default applied
        """
        pool = tuple(self.pool) or (self.owner_id,)

        if self.assignment is AssignmentMethod.FIXED:
            host = self.host_id or self.owner_id
            assignment_pool = AssignmentPool(actor_ids=(host,), method=self.assignment, fixed_actor_id=host)
        else:
            assignment_pool = AssignmentPool(actor_ids=pool, method=self.assignment)

        meeting = MeetingSpec(
            duration_minutes=self.duration_minutes,
            buffer_before=self.buffer_before,
            buffer_after=self.buffer_after,
            lead_time_minutes=self.lead_time_minutes,
            max_per_day=self.max_per_day,
            timezone=self.timezone or display_timezone,
        )

        return BookingLink(
            id=self.id,
            owner_id=self.owner_id,
            meeting=meeting,
            pool=assignment_pool,
            availability_override=self.availability.to_policy() if self.availability else None,
            availability_window_days=self.availability_window_days,
            is_active=self.is_active,
            title=self.title or self.id,
        )


class EngineConfig(BaseModel):
    """Application configuration."""
    default_timezone: str = "UTC"
    calendar_file: Optional[Path] = None
    actors: List[ActorConfig] = Field(default_factory=list)
    links: List[LinkConfig] = Field(default_factory=list)

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return validate_zone(value)

    @field_validator("actors")
    @classmethod
    def validate_actors(cls, value: List[ActorConfig]) -> List[ActorConfig]:
        """Ensure actor ids are unique."""
        seen: set[str] = set()
        for actor in value:
            if actor.id in seen:
                raise ValueError(f"Duplicate actor id detected: {actor.id}")
            seen.add(actor.id)
        return value

    @model_validator(mode="after")
    def validate_references(self) -> "EngineConfig":
        """Ensure links only reference configured actors and have unique ids."""
        actor_ids = {actor.id for actor in self.actors}
        seen_links: set[str] = set()

        for link in self.links:
            if link.id in seen_links:
                raise ValueError(f"Duplicate link id detected: {link.id}")
            seen_links.add(link.id)

            referenced = [link.owner_id, *link.pool]
            if link.host_id:
                referenced.append(link.host_id)
            unknown = sorted(set(referenced) - actor_ids)
            if unknown:
                raise ValueError(f"Link '{link.id}' references unknown actor(s): {unknown}")

        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            EngineConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a slotbooker.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError("Config file must contain a mapping at the root level.")

        config = cls(**data)

        # Relative calendar files are resolved next to the config file.
        if config.calendar_file is not None and not config.calendar_file.is_absolute():
            config.calendar_file = config_path.parent / config.calendar_file

        return config

    def find_actor(self, actor_id: str) -> ActorConfig | None:
        for actor in self.actors:
            if actor.id == actor_id:
                return actor
        return None

    def find_link(self, link_id: str) -> LinkConfig | None:
        for link in self.links:
            if link.id == link_id:
                return link
        return None

    def resolve_link(self, link_id: str) -> BookingLink:
        """
        Resolve a link by id.

        Raises:
            ValueError: If no link with that id is configured
        """
        link = self.find_link(link_id)
        if link is None:
            raise ValueError(
                f"Unknown booking link: '{link_id}'. "
                f"Configured links: {', '.join(configured.id for configured in self.links) or 'none'}"
            )

        owner = self.find_actor(link.owner_id)
        return link.resolve(display_timezone=owner.timezone if owner else self.default_timezone)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for slotbooker.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "slotbooker.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "slotbooker.yaml"

    return config_path
