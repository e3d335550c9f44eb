import json
import os
from pathlib import Path
from typing import Dict, Any
from loguru import logger


DEFAULT_CONFIG_PATH = Path(__file__).parent / 'detection_settings.json'

REQUIRED_SECTIONS = [
    "temporal_analysis", "cycle_detection", "smurfing_detection",
    "layered_detection", "scoring", "ensemble", "risk_predictor",
    "consolidation", "alerts", "report",
]


def load_detection_config(config_path: str = None) -> Dict[str, Any]:
    """
    Configuration loader for the detection pipeline.
    Loads settings from a JSON file, falling back to the packaged defaults.

    Args:
        config_path: Optional custom path to config file. If None, uses
            DETECTION_SETTINGS_PATH or the packaged detection_settings.json.

    Returns:
        Dictionary containing detection configuration

    Raises:
        ValueError: If the packaged default configuration is invalid
    """
    if config_path is None:
        config_path = os.environ.get('DETECTION_SETTINGS_PATH') or DEFAULT_CONFIG_PATH

    config_path = Path(config_path)

    if config_path == DEFAULT_CONFIG_PATH:
        return _load_default_config()

    try:
        if not config_path.exists():
            logger.warning(f"Configuration file not found at {config_path}. Using packaged defaults.")
            return _load_default_config()

        with open(config_path, 'r') as f:
            logger.info(f"Loading detection configuration from {config_path}")
            config_data = json.load(f)

        _validate_config(config_data)
        return config_data

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in configuration file {config_path}: {e}")
        return _load_default_config()
    except ValueError as e:
        logger.error(f"Invalid configuration in {config_path}: {e}")
        return _load_default_config()


def _load_default_config() -> Dict[str, Any]:
    with open(DEFAULT_CONFIG_PATH, 'r') as f:
        logger.debug(f"Loading detection configuration from {DEFAULT_CONFIG_PATH}")
        config_data = json.load(f)

    _validate_config(config_data)
    return config_data


def _validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration structure."""
    for key in REQUIRED_SECTIONS:
        if key not in config:
            raise ValueError(f"Missing required configuration key: {key}")

    for section_name in REQUIRED_SECTIONS:
        if not isinstance(config[section_name], dict):
            raise ValueError(f"Configuration for '{section_name}' must be a dictionary")

    cycle_config = config["cycle_detection"]
    for key in ["min_cycle_length", "max_cycle_length"]:
        if key not in cycle_config:
            raise ValueError(f"Missing required cycle detection parameter: {key}")
    if cycle_config["min_cycle_length"] > cycle_config["max_cycle_length"]:
        raise ValueError("min_cycle_length must not exceed max_cycle_length")

    weights = config["ensemble"].get("model_weights", {})
    for key in ["isolation_forest", "local_outlier_factor", "risk_predictor"]:
        if key not in weights:
            raise ValueError(f"Missing ensemble model weight: {key}")

    if "pattern_weights" not in config["scoring"]:
        raise ValueError("Missing required scoring parameter: pattern_weights")


def get_config_summary(config: Dict[str, Any]) -> Dict[str, Any]:
    """Get summary information about the loaded configuration."""
    return {
        "config_sections": len(config),
        "available_sections": list(config.keys()),
        "pattern_weights": len(config["scoring"]["pattern_weights"]),
    }
