class PatternTypes:
    CYCLE = "cycle"
    LAYERED = "layered"
    SMURFING_FAN_IN = "smurfing_fan_in"
    SMURFING_FAN_OUT = "smurfing_fan_out"
    SOLO = "solo"


class PatternTags:
    CYCLE_PREFIX = "cycle_length_"
    LAYERED_NETWORK = "layered_network"
    FAN_IN_AGGREGATOR = "fan_in_aggregator"
    FAN_IN_SENDER = "fan_in_sender"
    FAN_OUT_DISPERSER = "fan_out_disperser"
    FAN_OUT_RECEIVER = "fan_out_receiver"
    HIGH_VELOCITY = "high_velocity"
    UNUSUAL_TIMING = "unusual_timing"
    ROUND_TRIPPING = "round_tripping"

    @classmethod
    def cycle_length(cls, length: int) -> str:
        return f"{cls.CYCLE_PREFIX}{length}"


class RiskLevels:
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertTypes:
    HIGH_RISK_RING = "HIGH_RISK_RING"
    CRITICAL_ACCOUNT = "CRITICAL_ACCOUNT"
    SUSPICIOUS_ACCOUNT = "SUSPICIOUS_ACCOUNT"
    MULTIPLE_CYCLES = "MULTIPLE_CYCLES"


NETWORK_TARGET_ID = "NETWORK"

MODEL_VERSION = "ensemble_v2.1"

RING_ID_FORMAT = "RING_{:03d}"
CANDIDATE_ID_FORMAT = "CAND_{:04d}"


def get_risk_level(risk_score: float) -> str:
    if risk_score > 80:
        return RiskLevels.CRITICAL
    if risk_score > 60:
        return RiskLevels.HIGH
    if risk_score > 40:
        return RiskLevels.MEDIUM
    return RiskLevels.LOW
