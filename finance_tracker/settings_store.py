"""
Settings Store

Holds the user's display configuration: currency, categories and their
colours, the monthly spending target.

DESIGN DECISION: Defaults are applied in exactly one place,
normalize_settings(), when settings are loaded. Everything downstream
receives a complete, valid AppSettings and never needs inline fallbacks.
A malformed stored field falls back to its default with a warning; it
never takes the whole settings object down with it.
"""

import json
import threading
from decimal import Decimal
from typing import Any, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as SchemaError

from finance_tracker.audit.logger import AuditLogger
from finance_tracker.errors import (
    PersistenceError,
    ValidationError,
    schema_error_messages,
)
from finance_tracker.formatting.currency import CURRENCIES, DEFAULT_CURRENCY
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.finance import (
    DEFAULT_CATEGORY_COLOR,
    AppSettings,
    AppSettingsUpdate,
)
from finance_tracker.services.storage import (
    CorruptValueError,
    KeyValueStorage,
    StorageError,
)


logger = structlog.get_logger(__name__)

DEFAULT_KEY_PREFIX = "financial_dashboard_"
SETTINGS_KEY = "settings"


# =============================================================================
# DEFAULTS TABLE
# =============================================================================

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Food",
    "Transport",
    "Entertainment",
    "Shopping",
    "Utilities",
    "Healthcare",
    "Education",
    "Transfer",
    "Other",
)

DEFAULT_CATEGORY_COLORS: dict[str, str] = {
    "Food": "#ef4444",
    "Transport": "#f97316",
    "Entertainment": "#eab308",
    "Shopping": "#22c55e",
    "Utilities": "#06b6d4",
    "Healthcare": "#3b82f6",
    "Education": "#8b5cf6",
    "Transfer": "#f59e0b",
    "Other": DEFAULT_CATEGORY_COLOR,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "monthly_target": Decimal("1000"),
    "categories": list(DEFAULT_CATEGORIES),
    "currency": DEFAULT_CURRENCY,
    "dark_mode": False,
    "app_title": "Personal Finance Dashboard",
    "logo_url": None,
    "category_colors": dict(DEFAULT_CATEGORY_COLORS),
}

# camelCase storage key -> field name
_ALIASES = {
    (info.alias or name): name for name, info in AppSettings.model_fields.items()
}


def _field_name(key: Any) -> Optional[str]:
    if key in AppSettings.model_fields:
        return key
    return _ALIASES.get(key)


def _defaults(default_currency: str) -> dict[str, Any]:
    values = {
        key: (list(value) if isinstance(value, list) else
              dict(value) if isinstance(value, dict) else value)
        for key, value in DEFAULT_SETTINGS.items()
    }
    if default_currency in CURRENCIES:
        values["currency"] = default_currency
    return values


def _dedupe(categories: Any) -> Any:
    if not isinstance(categories, list):
        return categories
    seen: list[str] = []
    for category in categories:
        name = category.strip() if isinstance(category, str) else category
        if name not in seen:
            seen.append(name)
    return seen


def normalize_settings(
    raw: Optional[Mapping[str, Any]],
    default_currency: str = DEFAULT_CURRENCY,
) -> AppSettings:
    """
    Build a complete AppSettings from whatever was stored.

    - Missing or null fields take their default
    - Invalid fields take their default (logged as a warning)
    - Duplicate categories are collapsed, first occurrence wins
    - Stored colours override the default palette; categories without any
      colour get DEFAULT_CATEGORY_COLOR
    """
    defaults = _defaults(default_currency)
    candidate = dict(defaults)

    if isinstance(raw, Mapping):
        for key, value in raw.items():
            name = _field_name(key)
            if name is not None and value is not None:
                candidate[name] = value
    elif raw is not None:
        logger.warning("settings_not_a_mapping", received=type(raw).__name__)

    candidate["categories"] = _dedupe(candidate["categories"])
    if isinstance(candidate["category_colors"], Mapping):
        candidate["category_colors"] = {
            **DEFAULT_CATEGORY_COLORS,
            **candidate["category_colors"],
        }
    if isinstance(candidate["currency"], str):
        candidate["currency"] = candidate["currency"].upper()

    # Each pass replaces the failing fields, so this converges quickly
    for _ in range(len(defaults) + 1):
        try:
            return AppSettings.model_validate(candidate)
        except SchemaError as e:
            for err in e.errors():
                loc = err.get("loc", ())
                name = _field_name(loc[0]) if loc else None
                if name is None:
                    continue
                logger.warning(
                    "settings_field_reset",
                    field=name,
                    error=err.get("msg"),
                )
                if name == "category_colors" and len(loc) > 1:
                    candidate["category_colors"].pop(loc[1], None)
                else:
                    candidate[name] = defaults[name]

    return AppSettings.model_validate(defaults)


class SettingsStore:
    """
    Owns AppSettings persistence.

    Reads always go through normalize_settings(); writes validate first
    and persist second, so stored settings are always a valid AppSettings.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        default_currency: str = DEFAULT_CURRENCY,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._key = f"{key_prefix}{SETTINGS_KEY}"
        self._default_currency = default_currency
        self._audit_logger = audit_logger
        self._lock = threading.RLock()

    @property
    def key(self) -> str:
        return self._key

    def get_settings(self) -> AppSettings:
        """Load settings, applying defaults to anything missing or invalid."""
        with self._lock:
            try:
                text = self._storage.get(self._key)
            except CorruptValueError as e:
                logger.warning("settings_unreadable", key=self._key, error=str(e))
                text = None
            except StorageError as e:
                raise PersistenceError(f"Failed to read settings: {e}", key=self._key) from e

            raw = None
            if text is not None:
                try:
                    raw = json.loads(text)
                except json.JSONDecodeError as e:
                    logger.warning("settings_unreadable", key=self._key, error=str(e))

            return normalize_settings(raw, self._default_currency)

    def update_settings(
        self,
        updates: Union[AppSettingsUpdate, Mapping[str, Any]],
    ) -> AppSettings:
        """
        Merge updates into the current settings and persist.

        Changing categories keeps the colour invariant: new categories
        without a colour get DEFAULT_CATEGORY_COLOR.

        Raises:
            ValidationError: If the merged settings are invalid
            PersistenceError: If storage rejects the write
        """
        with self._lock:
            try:
                if isinstance(updates, AppSettingsUpdate):
                    patch = updates.model_dump(exclude_unset=True)
                else:
                    patch = AppSettingsUpdate.model_validate(updates).model_dump(exclude_unset=True)
            except SchemaError as e:
                raise ValidationError("Invalid settings update", schema_error_messages(e)) from e

            current = self.get_settings()
            merged = current.model_dump()
            merged.update(patch)
            if patch.get("category_colors") is not None:
                merged["category_colors"] = {
                    **current.category_colors,
                    **patch["category_colors"],
                }

            try:
                settings = AppSettings.model_validate(merged)
            except SchemaError as e:
                raise ValidationError("Invalid settings", schema_error_messages(e)) from e

            try:
                self._storage.set(self._key, json.dumps(settings.to_storage(), ensure_ascii=False))
            except StorageError as e:
                if self._audit_logger:
                    self._audit_logger.log(
                        AuditEventBuilder.persistence_failed(self._key, str(e))
                    )
                raise PersistenceError(f"Failed to save settings: {e}", key=self._key) from e

            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.settings_updated(sorted(patch)))
            return settings
