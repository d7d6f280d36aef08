"""
Configuration management using Pydantic models loaded from YAML.
"""

from pathlib import Path
from typing import List, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator

from .domain.models import Identity, ResourceRef

CUTYPES = ("INDIVIDUAL", "GROUP", "RESOURCE", "ROOM", "UNKNOWN")


class OrganizerConfig(BaseModel):
    """The organizer whose scheduling outbox is used."""
    email: str
    name: str = ""

    def to_identity(self) -> Identity:
        return Identity(address=self.email, role="CHAIR", common_name=self.name)


class Participant(BaseModel):
    """Participant configuration."""
    name: str  # Used as alias
    email: str
    cutype: str = "INDIVIDUAL"

    @field_validator("cutype")
    @classmethod
    def validate_cutype(cls, v: str) -> str:
        """Validate the calendar user type."""
        v = v.upper()
        if v not in CUTYPES:
            raise ValueError(f"cutype must be one of {', '.join(CUTYPES)}, got {v}")
        return v

    def to_identity(self) -> Identity:
        return Identity(address=self.email, common_name=self.name, cutype=self.cutype)


class Resource(BaseModel):
    """Bookable resource configuration."""
    id: str
    name: str = ""
    email: str = ""  # Optional: queried for its own free-busy data

    def to_ref(self) -> ResourceRef:
        return ResourceRef(id=self.id, name=self.name, address=self.email)


class AppConfig(BaseModel):
    """Application configuration."""
    server_url: str = ""
    username: str = ""
    password: str = ""
    request_timeout: float = 30
    timezone: str = "Europe/Berlin"
    organizer: OrganizerConfig
    participants: List[Participant] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        """Ensure the HTTP timeout is positive."""
        if value <= 0:
            raise ValueError("request_timeout must be greater than zero")
        return value

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, value: List[Participant]) -> List[Participant]:
        """Ensure participant aliases and emails are unique."""
        seen_names: set[str] = set()
        seen_emails: set[str] = set()
        for participant in value:
            name_key = participant.name.lower()
            email_key = participant.email.lower()
            if name_key in seen_names:
                raise ValueError(f"Duplicate participant name detected: {participant.name}")
            if email_key in seen_emails:
                raise ValueError(f"Duplicate participant email detected: {participant.email}")
            seen_names.add(name_key)
            seen_emails.add(email_key)
        return value

    @field_validator("resources")
    @classmethod
    def validate_resources(cls, value: List[Resource]) -> List[Resource]:
        """Ensure resource ids are unique."""
        ids = [resource.id for resource in value]
        duplicates = sorted({rid for rid in ids if ids.count(rid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate resource ids detected: {duplicates}")
        return value

    def get_auth(self) -> Tuple[str, str] | None:
        """Return HTTP basic credentials if a username is configured."""
        if not self.username:
            return None
        return (self.username, self.password)

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "AppConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            AppConfig instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return cls(**data)

    def find_participant_by_name(self, name: str) -> Participant | None:
        """Find a participant by their name (alias)."""
        for participant in self.participants:
            if participant.name.lower() == name.lower():
                return participant
        return None

    def find_resource(self, resource_id: str) -> Resource | None:
        """Find a configured resource by id."""
        for resource in self.resources:
            if resource.id == resource_id:
                return resource
        return None

    def resolve_participant(self, identifier: str) -> Identity:
        """
        Resolve a participant identifier (name/alias or email) to an Identity.

        Raises:
            ValueError: If identifier cannot be resolved
        """
        if "@" in identifier:
            return Identity(address=identifier.lower())

        participant = self.find_participant_by_name(identifier)
        if participant:
            return participant.to_identity()

        raise ValueError(
            f"Unknown participant identifier: '{identifier}'. "
            f"Use an email address or a configured name."
        )

    def resolve_resource(self, resource_id: str) -> ResourceRef:
        """Resolve a resource id; unknown ids become tag-only resources."""
        resource = self.find_resource(resource_id)
        if resource:
            return resource.to_ref()
        return ResourceRef(id=resource_id)


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of the package)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
