"""Built-in assistant tools: simulated weather, audit logging and user preferences."""

import json
import logging
import time

from .context_store import ContextStore
from .tool_catalog import ParameterSpec, ToolCatalog, tool


logger = logging.getLogger("Chat-Tools")
audit_logger = logging.getLogger("Audit-Log")

SEVERITY_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_WEATHER = {
    "london": {"Location": "London, UK", "Temperature": "16°C", "Conditions": "Partly Cloudy", "Unit": "Celsius"},
    "new york": {"Location": "New York, USA", "Temperature": "25°C", "Conditions": "Sunny", "Unit": "Celsius"},
}


class ChatTools:
    """Tool handlers backed by a ContextStore for preference storage."""

    def __init__(self, store: ContextStore, latency: float = 0.0):
        self.store = store
        self.latency = max(0.0, float(latency))

    def get_weather(self, location: str) -> str:
        """Return simulated current conditions for a city as a JSON string."""
        logger.info(f"[TOOL CALL: get_weather] Fetching weather for: {location}")
        self._simulate_latency()

        lowered = location.lower()
        for city, report in _WEATHER.items():
            if city in lowered:
                return json.dumps(report, ensure_ascii = False)

        return json.dumps(
            {"Location": location, "Temperature": "N/A", "Conditions": "Data not available", "Unit": "N/A"},
            ensure_ascii = False,
        )

    def log(self, message: str, severity: str = "Info") -> bool:
        """Write a message to the audit log at the given severity."""
        level = SEVERITY_LEVELS.get((severity or "").strip().lower(), logging.INFO)
        logger.info(f"[TOOL CALL: log] Severity: {severity}, Message: {message}")
        self._simulate_latency()
        audit_logger.log(level, message)
        return True

    def set_user_preference(self, userId: str, key: str, value: str) -> bool:
        logger.info(f"[TOOL CALL: set_user_preference] User: {userId}, Key: {key}, Value: {value}")
        try:
            state = self.store.get_or_create(userId)
            state.preferences[key] = value
            self.store.update(state)
        except Exception as exc:
            logger.error(f"[TOOL CALL: set_user_preference] Error setting preference: {exc}")
            return False
        return True

    def get_user_preference(self, userId: str, key: str) -> str:
        """Return the stored value, or an empty string when the key is unknown."""
        logger.info(f"[TOOL CALL: get_user_preference] User: {userId}, Key: {key}")
        state = self.store.get_or_create(userId)
        value = state.preferences.get(key)
        if value is None:
            logger.info(f"[TOOL CALL: get_user_preference] Preference '{key}' not found for user '{userId}'")
            return ""
        return value

    def build_catalog(self) -> ToolCatalog:
        return ToolCatalog([
            tool(
                name = "get_weather",
                description = "Gets the current weather conditions for a specified city.",
                handler = self.get_weather,
                parameters = [
                    ParameterSpec("location", "string", "The city to get weather for, e.g., 'London' or 'New York'."),
                ],
            ),
            tool(
                name = "log",
                description = "Logs an arbitrary message to a persistent system audit log.",
                handler = self.log,
                parameters = [
                    ParameterSpec("message", "string", "The text message to log."),
                    ParameterSpec(
                        "severity",
                        "string",
                        "The severity level of the log (e.g., 'Info', 'Warning', 'Error').",
                        default = "Info",
                    ),
                ],
            ),
            tool(
                name = "set_user_preference",
                description = "Sets a user preference key-value pair in their profile. Requires a userId.",
                handler = self.set_user_preference,
                parameters = [
                    ParameterSpec("userId", "string", "The ID of the user whose preference to set."),
                    ParameterSpec("key", "string", "The preference key (e.g., 'preferred_city', 'theme')."),
                    ParameterSpec("value", "string", "The preference value."),
                ],
            ),
            tool(
                name = "get_user_preference",
                description = "Retrieves a user preference by key from their profile. Requires a userId.",
                handler = self.get_user_preference,
                parameters = [
                    ParameterSpec("userId", "string", "The ID of the user whose preference to get."),
                    ParameterSpec("key", "string", "The preference key to look up."),
                ],
            ),
        ])

    def _simulate_latency(self) -> None:
        if self.latency:
            time.sleep(self.latency)
