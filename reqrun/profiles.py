"""reqrun profiles - named connection defaults stored in a YAML file."""

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml
from dotenv import dotenv_values

from reqrun.errors import ProfileNotFound, ProfileStoreError

logger = logging.getLogger(__name__)

GLOBAL_DIR = Path.home() / ".reqrun"
GLOBAL_PROFILES = GLOBAL_DIR / "profiles.yaml"

CONFIG_ENV_VAR = "REQRUN_CONFIG"

_VAR_RE = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


@dataclass(frozen=True)
class Profile:
    """A named bundle of request defaults."""

    name: str
    base_url: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    auth_type: str = "none"
    user: str = ""
    password: str = ""
    token: str = ""

    @classmethod
    def from_dict(cls, name: str, data: dict | None) -> "Profile":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ProfileStoreError(
                f"profile '{name}' must be a mapping, got {type(data).__name__}",
            )
        headers = data.get("headers") or {}
        if not isinstance(headers, dict):
            raise ProfileStoreError(f"profile '{name}': headers must be a mapping")
        return cls(
            name=name,
            base_url=str(data.get("base_url") or ""),
            headers={str(k): str(v) for k, v in headers.items()},
            auth_type=str(data.get("auth_type") or "none"),
            user=str(data.get("user") or ""),
            password=str(data.get("pass") or ""),
            token=str(data.get("token") or ""),
        )

    def to_dict(self) -> dict:
        """Serialize for the profile file, omitting empty fields."""
        data: dict = {"base_url": self.base_url}
        if self.headers:
            data["headers"] = dict(self.headers)
        if self.auth_type and self.auth_type != "none":
            data["auth_type"] = self.auth_type
        if self.user:
            data["user"] = self.user
        if self.password:
            data["pass"] = self.password
        if self.token:
            data["token"] = self.token
        return data

    def expanded(self, env: dict[str, str]) -> "Profile":
        """Return a copy with $VAR / ${VAR} references resolved from env."""
        return replace(
            self,
            base_url=expand_value(self.base_url, env),
            headers={k: expand_value(v, env) for k, v in self.headers.items()},
            user=expand_value(self.user, env),
            password=expand_value(self.password, env),
            token=expand_value(self.token, env),
        )


def expand_value(value: str, env: dict[str, str]) -> str:
    """Resolve $VAR and ${VAR} references. Unknown names are left as written."""
    if not value:
        return value

    def _replace(m: re.Match) -> str:
        var_name = m.group(1) or m.group(2)
        return env.get(var_name, m.group(0))

    return _VAR_RE.sub(_replace, value)


def load_env(env_file: str | Path | None = None) -> dict[str, str]:
    """Return os.environ overlaid with the values of a .env file, if given."""
    env = dict(os.environ)
    if env_file:
        path = Path(env_file)
        if not path.exists():
            raise ProfileStoreError(f"env file not found: {path}")
        values = dotenv_values(str(path))
        env.update({k: v for k, v in values.items() if v is not None})
    return env


def default_profiles_path() -> Path:
    """Profile file location: $REQRUN_CONFIG, else ~/.reqrun/profiles.yaml."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return GLOBAL_PROFILES


class ProfileStore:
    """Reads and writes the profile file.

    A missing file is an empty profile set, not an error.
    """

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else default_profiles_path()

    def load(self) -> dict[str, Profile]:
        if not self.path.exists():
            logger.debug("profile file %s does not exist", self.path)
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ProfileStoreError(f"reading {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise ProfileStoreError(f"{self.path}: expected a mapping at top level")
        raw_profiles = data.get("profiles") or {}
        if not isinstance(raw_profiles, dict):
            raise ProfileStoreError(f"{self.path}: 'profiles' must be a mapping")

        profiles = {
            str(name): Profile.from_dict(str(name), body)
            for name, body in raw_profiles.items()
        }
        logger.debug("loaded %d profile(s) from %s", len(profiles), self.path)
        return profiles

    def save(self, profiles: dict[str, Profile]) -> None:
        document = {"profiles": {name: p.to_dict() for name, p in profiles.items()}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(document, f, sort_keys=False, default_flow_style=False)
        except OSError as e:
            raise ProfileStoreError(f"writing {self.path}: {e}") from e
        logger.debug("saved %d profile(s) to %s", len(profiles), self.path)

    def get(self, name: str) -> Profile:
        profiles = self.load()
        if name not in profiles:
            raise ProfileNotFound(name)
        return profiles[name]

    def put(self, profile: Profile) -> None:
        profiles = self.load()
        profiles[profile.name] = profile
        self.save(profiles)

    def remove(self, name: str) -> None:
        profiles = self.load()
        if name not in profiles:
            raise ProfileNotFound(name)
        del profiles[name]
        self.save(profiles)


class MemoryProfileStore(ProfileStore):
    """Profile store kept in memory, for callers that never touch disk."""

    def __init__(self, profiles: dict[str, Profile] | None = None):
        self.path = None
        self._profiles = dict(profiles or {})

    def load(self) -> dict[str, Profile]:
        return dict(self._profiles)

    def save(self, profiles: dict[str, Profile]) -> None:
        self._profiles = dict(profiles)
