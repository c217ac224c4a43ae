import logging
import os
from typing import Mapping

from pydantic_settings import BaseSettings, SettingsConfigDict

from gitproxy.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    GITHUB_API_URL: str = "https://api.github.com"
    USER_AGENT: str = "gitproxy"
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0
    BUNDLE_CONCURRENCY: int = 8
    DEFAULT_CHUNK_FILES: int = 20
    PATCH_MAX_CHARS: int = 2000
    DIFF_MAX_COMMITS: int = 20
    LOG_LEVEL: str = "INFO"
    TOKEN_DEFAULT: str | None = None

    # TOKEN_<OWNER> entries in .env land in model_extra
    model_config = SettingsConfigDict(env_file=".env", extra="allow")


settings = Settings()


def token_env_name(owner: str) -> str:
    return "TOKEN_" + (owner or "").upper().replace("-", "_")


class TokenProvider:
    """Picks the GitHub token for a repository owner.

    Looks up ``TOKEN_<OWNER>`` (upper-cased, dashes turned into underscores)
    and falls back to the default token.
    """

    def __init__(self, tokens: Mapping[str, str], default: str | None = None):
        self._tokens = {k.upper(): v for k, v in tokens.items() if v}
        self._default = default or None

    @classmethod
    def from_settings(cls, conf: Settings, environ: Mapping[str, str] | None = None):
        environ = os.environ if environ is None else environ
        tokens = {}
        for key, value in (conf.model_extra or {}).items():
            if key.upper().startswith("TOKEN_") and isinstance(value, str):
                tokens[key] = value
        # real environment wins over .env
        for key, value in environ.items():
            if key.upper().startswith("TOKEN_"):
                tokens[key] = value
        return cls(tokens, default=conf.TOKEN_DEFAULT)

    def for_owner(self, owner: str) -> str:
        name = token_env_name(owner)
        token = self._tokens.get(name)
        if token:
            logger.info("Owner %s: using token variable %s", owner, name)
            return token
        if self._default:
            logger.info("Owner %s: using token variable TOKEN_DEFAULT", owner)
            return self._default
        raise ConfigurationError(f"Server config error: no token found for owner {owner!r}")
