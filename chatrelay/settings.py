"""Runtime settings assembled from the YAML config and environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional
from urllib.parse import urlparse

from .core.exceptions import ConfigurationError, ValidationError

logger = logging.getLogger("chatrelay")

DEFAULT_MODEL_IDS: dict[str, str] = {
    "gpt-4o-mini": "25865",
    "gpt-5-nano": "25871",
    "gemini-2.5-pro": "25874",
    "deepseek-v3": "25873",
    "claude-3.5-sonnet": "25875",
    "grok-3": "25872",
    "meta-llama-3": "25870",
    "qwen3-max": "25869",
}

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/141.0.0.0 Safari/537.36"
)

DEFAULT_SITE_URL = "https://chatgptfree.ai"
DEFAULT_RELAY_URL = "https://api.kimi.com/coding"
DEFAULT_RELAY_USER_AGENT = "KimiCLI/0.2.0"
DEFAULT_RELAY_MODELS = ("kimi-for-coding", "kimi-for-coding-thinking")
DEFAULT_VIRTUAL_MODELS: dict[str, dict[str, Any]] = {
    "kimi-for-coding-thinking": {"model": "kimi-for-coding", "flags": {"thinking": True}},
}


class ModelCatalog(Mapping[str, str]):
    """Immutable mapping from public model name to upstream bot id."""

    def __init__(self, models: Mapping[str, Any]) -> None:
        self._models = MappingProxyType(
            {str(name): str(bot_id) for name, bot_id in models.items()}
        )

    def __getitem__(self, name: str) -> str:
        return self._models[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._models)

    def __len__(self) -> int:
        return len(self._models)

    def resolve(self, model_name: Any) -> str:
        """Return the bot id for ``model_name`` or raise ``ValidationError``."""
        if not isinstance(model_name, str) or model_name not in self._models:
            raise ValidationError(f"unsupported model: {model_name}")
        return self._models[model_name]


@dataclass(frozen=True)
class SiteSettings:
    """Credentials and endpoints of the aipkit chat site."""

    base_url: str = DEFAULT_SITE_URL
    cookie: str = ""
    ajax_nonce: str = ""
    session_id: str = ""
    post_id: str = ""
    user_agent: str = BROWSER_USER_AGENT

    @property
    def ajax_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/wp-admin/admin-ajax.php"


@dataclass(frozen=True)
class VirtualModel:
    """A public model name that rewrites to a real one plus extra body flags."""

    model: str
    flags: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RelaySettings:
    """Settings of the pass-through OpenAI-compatible upstream."""

    enabled: bool = True
    prefix: str = "/relay"
    base_url: str = DEFAULT_RELAY_URL
    user_agent: str = DEFAULT_RELAY_USER_AGENT
    owned_by: str = "moonshot-ai"
    models: tuple[str, ...] = DEFAULT_RELAY_MODELS
    virtual_models: Mapping[str, VirtualModel] = field(default_factory=dict)

    @property
    def chat_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/chat/completions"

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc


@dataclass(frozen=True)
class GatewaySettings:
    """Everything the application factory needs, resolved once at startup."""

    site: SiteSettings
    models: ModelCatalog
    relay: RelaySettings
    api_key: Optional[str] = None
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    max_sessions: Optional[int] = None
    serialize_turns: bool = False
    upstream_timeout: Optional[float] = None


def _get(cfg: Mapping[str, Any], *keys: str) -> Any:
    cur: Any = cfg
    for key in keys:
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(key)
    return cur


def _to_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _to_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return None


def _env(environ: Mapping[str, str], name: str, fallback: Optional[str]) -> Optional[str]:
    value = environ.get(name)
    if value is None or value == "":
        return fallback
    return value


def _build_virtual_models(raw: Any) -> dict[str, VirtualModel]:
    if raw is None:
        raw = DEFAULT_VIRTUAL_MODELS
    if not isinstance(raw, Mapping):
        raise ConfigurationError("relay.virtual_models must be a mapping")
    virtual: dict[str, VirtualModel] = {}
    for alias, entry in raw.items():
        if not isinstance(entry, Mapping) or not _to_str(entry.get("model")):
            raise ConfigurationError(f"virtual model '{alias}' needs a target 'model'")
        flags = entry.get("flags") or {}
        if not isinstance(flags, Mapping):
            raise ConfigurationError(f"virtual model '{alias}' flags must be a mapping")
        virtual[str(alias)] = VirtualModel(model=str(entry["model"]), flags=dict(flags))
    return virtual


def load_settings(
    config: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GatewaySettings:
    """Build ``GatewaySettings`` from a parsed config and the environment.

    Environment variables win over the YAML values so deployments can keep
    secrets out of the config file.
    """
    cfg: Mapping[str, Any] = config or {}
    env: Mapping[str, str] = os.environ if environ is None else environ

    site_cfg = _get(cfg, "site") or {}
    site = SiteSettings(
        base_url=_to_str(site_cfg.get("base_url")) or DEFAULT_SITE_URL,
        cookie=_env(env, "COOKIE", _to_str(site_cfg.get("cookie"))) or "",
        ajax_nonce=_env(env, "AJAX_NONCE", _to_str(site_cfg.get("ajax_nonce"))) or "",
        session_id=_env(env, "SESSION_ID", _to_str(site_cfg.get("session_id"))) or "",
        post_id=_env(env, "POST_ID", _to_str(site_cfg.get("post_id"))) or "",
        user_agent=_to_str(site_cfg.get("user_agent")) or BROWSER_USER_AGENT,
    )

    raw_models = _get(cfg, "models")
    if raw_models is None:
        raw_models = DEFAULT_MODEL_IDS
    if not isinstance(raw_models, Mapping) or not raw_models:
        raise ConfigurationError("models must be a non-empty mapping of name -> bot id")

    relay_cfg = _get(cfg, "relay") or {}
    relay_models = relay_cfg.get("models")
    if relay_models is not None and not isinstance(relay_models, list):
        raise ConfigurationError("relay.models must be a list")
    prefix = _to_str(relay_cfg.get("prefix")) or "/relay"
    relay = RelaySettings(
        enabled=_to_bool(relay_cfg.get("enabled")) is not False,
        prefix="/" + prefix.strip("/"),
        base_url=_env(env, "RELAY_BASE_URL", _to_str(relay_cfg.get("base_url")))
        or DEFAULT_RELAY_URL,
        user_agent=_to_str(relay_cfg.get("user_agent")) or DEFAULT_RELAY_USER_AGENT,
        owned_by=_to_str(relay_cfg.get("owned_by")) or "moonshot-ai",
        models=tuple(str(m) for m in relay_models) if relay_models else DEFAULT_RELAY_MODELS,
        virtual_models=_build_virtual_models(relay_cfg.get("virtual_models")),
    )

    debug = _to_bool(cfg.get("debug")) or False
    debug_env = env.get("DEBUG")
    if debug_env:
        debug = debug_env.strip().lower() != "false"

    server_cfg = _get(cfg, "server") or {}
    host = _env(env, "CHATRELAY_HOST", _to_str(server_cfg.get("host"))) or "127.0.0.1"
    port = _to_int(env.get("CHATRELAY_PORT")) or _to_int(server_cfg.get("port")) or 8000

    max_sessions = _to_int(_get(cfg, "sessions", "max_sessions"))
    if max_sessions is not None and max_sessions <= 0:
        max_sessions = None
    timeout = _to_float(_get(cfg, "upstream", "timeout_seconds"))

    settings = GatewaySettings(
        site=site,
        models=ModelCatalog(raw_models),
        relay=relay,
        api_key=_env(env, "API_KEY", _to_str(cfg.get("api_key"))),
        debug=debug,
        host=host,
        port=port,
        max_sessions=max_sessions,
        serialize_turns=bool(_to_bool(_get(cfg, "sessions", "serialize_turns"))),
        upstream_timeout=timeout if timeout and timeout > 0 else None,
    )
    if not (site.cookie and site.ajax_nonce):
        logger.warning("Site cookie or ajax nonce is not configured; upstream calls will fail")
    return settings
