"""Configuration: pydantic-settings ``Settings`` plus the YAML loader."""
