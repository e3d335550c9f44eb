from abc import ABC, abstractmethod
from typing import Dict, List
from loguru import logger

from ringwatch.models import Account, DetectionResult, FraudRing


class BaseStage(ABC):
    """
    Abstract base class for pipeline stages.
    Holds the configuration and the shared config accessors.
    """

    def __init__(self, config: Dict):
        """
        Initialize the stage with configuration.

        Args:
            config: Configuration dictionary for the detection pipeline
        """
        self.config = config
        self._validate_config()
        logger.debug(f"Initialized {self.__class__.__name__}")

    @abstractmethod
    def _validate_config(self) -> None:
        """
        Validate that required configuration sections are present.

        Raises:
            ValueError: If required configuration is missing
        """
        pass

    def _require_section(self, section: str) -> None:
        if section not in self.config:
            raise ValueError(f"Missing '{section}' section in configuration")

    def _get_config_value(self, section: str, key: str, default=None):
        """
        Get configuration value from a section.

        Args:
            section: Configuration section name
            key: Configuration key within the section
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if section not in self.config:
            return default
        return self.config[section].get(key, default)


class BasePatternDetector(BaseStage):
    """
    Abstract base class for ring-producing pattern detectors.
    Detectors tag accounts and register candidate rings on the result.
    """

    @abstractmethod
    def detect(self, result: DetectionResult) -> List[FraudRing]:
        """
        Detect patterns over the account graph held by the result.

        Args:
            result: Run-scoped detection context; mutated in place

        Returns:
            Candidate rings registered by this detector
        """
        pass

    def _build_candidate(self, result: DetectionResult, pattern_type: str, member_ids) -> FraudRing:
        """Create an unregistered candidate ring snapshotting current member scores."""
        ring = FraudRing(pattern_type=pattern_type)
        for account_id in member_ids:
            account: Account = result.get_account(account_id)
            if account is not None:
                ring.add_account_with_score(account_id, account.suspicion_score)
        ring.calculate_risk_score(
            self._get_config_value("consolidation", "pattern_multipliers"),
            self._get_config_value("consolidation", "size_factor", 0.03),
        )
        return ring
