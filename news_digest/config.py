"""
Configuration management using YAML files, environment variables and dataclasses.

This module defines all configuration dataclasses and provides loading
from YAML files with defaults, followed by environment overrides for secrets.
Configuration sections:
- ProviderConfig: LLM completion service settings
- FetchConfig: Front page fetching and sanitizing
- PipelineConfig: Source batching and extraction limits
- SummaryConfig: Summarization instructions
- CostConfig: Generation-cost lookup and retry policy
- StoreConfig: Digest history file and retention
- PublishConfig: Static archive output
- MailConfig: SMTP delivery
- LoggingConfig: Logging behavior
- AppConfig: Root configuration container (also holds the source registry)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
import re
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .types import Source


DEFAULT_SOURCES: tuple[Source, ...] = (
    Source(name="The Verge", url="https://www.theverge.com"),
    Source(name="TechCrunch", url="https://techcrunch.com"),
    Source(name="Hacker News", url="https://news.ycombinator.com"),
    Source(name="The New York Times", url="https://www.nytimes.com"),
    Source(name="NOS", url="https://nos.nl"),
    Source(name="NRC", url="https://nrc.nl"),
    Source(name="9to5Mac", url="https://9to5mac.com"),
    Source(name="The Next Web", url="https://thenextweb.com"),
    Source(name="Axios", url="https://axios.com"),
)

FETCH_MODES = ("http", "browser")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class ProviderConfig:
    """Configuration for the LLM completion service.

    Attributes:
        name: Provider registry key
        base_url: API root; chat completions and generation lookups hang off it
        extraction_model: Model used for per-source article extraction
        summary_model: Model used for the digest summarization call
        api_key_env: Environment variable holding the API key
        api_key: Inline API key (takes precedence over the environment)
        app_url: Optional HTTP-Referer sent for attribution
        app_title: Optional X-Title sent for attribution
        timeout_seconds: Completion request timeout
        trust_env: Whether to respect system proxy settings
    """

    name: str = "openrouter"
    base_url: str = "https://openrouter.ai/api/v1"
    extraction_model: str = "google/gemini-2.0-flash-001"
    summary_model: str = "google/gemini-2.0-flash-001"
    api_key_env: str | None = None
    api_key: str | None = None
    app_url: str | None = None
    app_title: str | None = "Daily News Digest"
    timeout_seconds: float = 120.0
    trust_env: bool = True


@dataclass
class FetchConfig:
    """Configuration for front page fetching.

    Attributes:
        mode: "http" for a plain GET, "browser" for the remote Crawl4AI renderer
        timeout_seconds: HTTP request timeout for plain fetches
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
        sanitize: Pass markup through the allow-list sanitizer
        max_html_chars: Maximum characters of markup sent to the model
        browser_api_url: Remote Crawl4AI API URL (falls back to CRAWL4AI_API_URL)
        browser_api_username: HTTP Basic Auth username for the renderer
        browser_api_password: HTTP Basic Auth password for the renderer
        navigation_timeout_seconds: Page navigation timeout in browser mode
        wait_for_selectors: Content-indicating CSS selectors to wait for
        wait_for_timeout_seconds: How long to wait for any of those selectors
    """

    mode: str = "http"
    timeout_seconds: float = 20.0
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )
    sanitize: bool = True
    max_html_chars: int = 150000
    browser_api_url: str | None = None
    browser_api_username: str | None = None
    browser_api_password: str | None = None
    navigation_timeout_seconds: float = 30.0
    wait_for_selectors: list[str] = field(
        default_factory=lambda: ["article", "main", "[role='main']", "h2 a", "h3 a"]
    )
    wait_for_timeout_seconds: float = 10.0


@dataclass
class PipelineConfig:
    """Configuration for source orchestration.

    Attributes:
        batch_size: Sources processed concurrently per batch (1 = sequential)
        batch_delay_seconds: Pause between batches
        max_articles_per_source: Extraction cap passed to the model
    """

    batch_size: int = 3
    batch_delay_seconds: float = 1.0
    max_articles_per_source: int = 10


@dataclass
class SummaryConfig:
    """Configuration for the summarization call.

    Attributes:
        max_articles_per_category: Cap per category given to the model
        factual_only: Ask for strictly factual summaries
        banned_phrases: Analytical phrasing the model must avoid
        default_intro: Intro text used when the model output is unusable
    """

    max_articles_per_category: int = 3
    factual_only: bool = True
    banned_phrases: list[str] = field(
        default_factory=lambda: [
            "This highlights",
            "This underscores",
            "This signals",
            "It remains to be seen",
            "a testament to",
            "raises questions about",
        ]
    )
    default_intro: str = "Here's your daily news digest."


@dataclass
class CostConfig:
    """Configuration for generation-cost lookups.

    Attributes:
        enabled: Whether to look up usage metadata after each completion
        lookup_attempts: Maximum attempts per lookup
        backoff_seconds: Base delay; attempt n waits backoff * 2**n
        timeout_seconds: Lookup request timeout
    """

    enabled: bool = True
    lookup_attempts: int = 3
    backoff_seconds: float = 1.0
    timeout_seconds: float = 15.0


@dataclass
class StoreConfig:
    """Configuration for the digest history file.

    Attributes:
        path: JSON file, relative to the working directory
        max_entries: Retention cap; older digests are dropped
    """

    path: str = "digests-data.json"
    max_entries: int = 30


@dataclass
class PublishConfig:
    """Configuration for the static archive.

    Attributes:
        enabled: Whether to write archive files
        output_dir: Root of the generated site
        site_url: Public base URL used for absolute links (falls back to SITE_URL)
    """

    enabled: bool = True
    output_dir: str = "public"
    site_url: str | None = None


@dataclass
class MailConfig:
    """Configuration for SMTP delivery.

    Attributes:
        enabled: Whether to send the digest by email
        smtp_host: SMTP relay host
        smtp_port: SMTP relay port
        smtp_user: Login user
        smtp_password: Login password
        email_from: Sender address
        email_to: Recipient address
        use_ssl: Implicit TLS (SMTP_SSL); when False, STARTTLS is used
        timeout_seconds: Socket timeout
    """

    enabled: bool = True
    smtp_host: str | None = None
    smtp_port: int = 465
    smtp_user: str | None = None
    smtp_password: str | None = None
    email_from: str | None = None
    email_to: str | None = None
    use_ssl: bool = True
    timeout_seconds: float = 30.0


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory for log files
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM response logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "redact_content", "redact_urls")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    directory: str = "logs"
    filename: str = "run.jsonl"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "redact_urls"
    llm_log_file: str = "llm.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    provider: ProviderConfig = field(default_factory=ProviderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)
    costs: CostConfig = field(default_factory=CostConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    mail: MailConfig = field(default_factory=MailConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    sources: list[Source] = field(default_factory=lambda: list(DEFAULT_SOURCES))


DEFAULT_CONFIG = AppConfig()


def load_config(path: str | None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Load configuration from a YAML file with defaults, then apply the environment.

    Args:
        path: Optional YAML file; missing sections keep their defaults
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        A fully populated AppConfig. Call ``validate_config`` before use.
    """
    raw: dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError([f"{path}: top level must be a mapping"])

    cfg = _merge_config(DEFAULT_CONFIG, raw)
    _apply_env(cfg, os.environ if environ is None else environ)
    return cfg


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    try:
        sources = [_source_from_raw(item) for item in data["sources"]]
        return AppConfig(
            provider=ProviderConfig(**data["provider"]),
            fetch=FetchConfig(**data["fetch"]),
            pipeline=PipelineConfig(**data["pipeline"]),
            summary=SummaryConfig(**data["summary"]),
            costs=CostConfig(**data["costs"]),
            store=StoreConfig(**data["store"]),
            publish=PublishConfig(**data["publish"]),
            mail=MailConfig(**data["mail"]),
            logging=LoggingConfig(**data["logging"]),
            sources=sources,
        )
    except TypeError as exc:
        raise ConfigError([f"Unknown or malformed config option: {exc}"]) from exc


def _source_from_raw(item: Any) -> Source:
    if isinstance(item, Source):
        return item
    if isinstance(item, dict) and item.get("name") and item.get("url"):
        return Source(name=str(item["name"]), url=str(item["url"]))
    raise TypeError(f"source entries need 'name' and 'url', got {item!r}")


def _apply_env(cfg: AppConfig, environ: Mapping[str, str]) -> None:
    """Overlay secrets and deployment settings from the environment."""
    mail = cfg.mail
    mail.smtp_host = environ.get("SMTP_HOST", mail.smtp_host)
    port = environ.get("SMTP_PORT")
    if port is not None:
        # Kept as-is when malformed so validate_config can report it.
        mail.smtp_port = int(port) if port.strip().isdigit() else port  # type: ignore[assignment]
    mail.smtp_user = environ.get("SMTP_USER", mail.smtp_user)
    mail.smtp_password = environ.get("SMTP_PASS", mail.smtp_password)
    mail.email_from = environ.get("EMAIL_FROM", mail.email_from)
    mail.email_to = environ.get("EMAIL_TO", mail.email_to)

    if not cfg.provider.api_key:
        env_name = cfg.provider.api_key_env or "OPENROUTER_API_KEY"
        cfg.provider.api_key = environ.get(env_name) or None

    cfg.publish.site_url = cfg.publish.site_url or environ.get("SITE_URL") or None
    fetch = cfg.fetch
    fetch.browser_api_url = fetch.browser_api_url or environ.get("CRAWL4AI_API_URL") or None
    fetch.browser_api_username = (
        fetch.browser_api_username or environ.get("CRAWL4AI_API_USERNAME") or None
    )
    fetch.browser_api_password = (
        fetch.browser_api_password or environ.get("CRAWL4AI_API_PASSWORD") or None
    )


def validate_config(cfg: AppConfig) -> AppConfig:
    """Check required values, raising ConfigError listing every problem."""
    problems: list[str] = []

    if not cfg.provider.api_key:
        env_name = cfg.provider.api_key_env or "OPENROUTER_API_KEY"
        problems.append(f"missing API key (set {env_name})")

    if cfg.mail.enabled:
        mail = cfg.mail
        for label, value in (
            ("SMTP_HOST", mail.smtp_host),
            ("SMTP_USER", mail.smtp_user),
            ("SMTP_PASS", mail.smtp_password),
        ):
            if not value:
                problems.append(f"missing {label}")
        if not isinstance(mail.smtp_port, int) or not 0 < mail.smtp_port < 65536:
            problems.append(f"SMTP_PORT must be a port number, got {mail.smtp_port!r}")
        for label, value in (("EMAIL_FROM", mail.email_from), ("EMAIL_TO", mail.email_to)):
            if not value:
                problems.append(f"missing {label}")
            elif not _EMAIL_RE.match(value):
                problems.append(f"{label} is not a valid email address: {value!r}")

    if cfg.fetch.mode not in FETCH_MODES:
        problems.append(f"fetch.mode must be one of {', '.join(FETCH_MODES)}, got {cfg.fetch.mode!r}")
    elif cfg.fetch.mode == "browser" and not cfg.fetch.browser_api_url:
        problems.append("fetch.mode 'browser' requires CRAWL4AI_API_URL")

    for label, value in (
        ("pipeline.batch_size", cfg.pipeline.batch_size),
        ("store.max_entries", cfg.store.max_entries),
    ):
        if not isinstance(value, int) or isinstance(value, bool):
            problems.append(f"{label} must be an integer, got {value!r}")
        elif value < 1:
            problems.append(f"{label} must be at least 1")
    if not cfg.sources:
        problems.append("no sources configured")

    if problems:
        raise ConfigError(problems)
    return cfg


def get_browser_api_auth(cfg: FetchConfig) -> tuple[str, str] | None:
    """Return (username, password) for the renderer if both are configured."""
    if cfg.browser_api_username and cfg.browser_api_password:
        return (cfg.browser_api_username, cfg.browser_api_password)
    return None
