from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from ringwatch.utils.pattern_utils import canonical_member_key, generate_candidate_id


DEFAULT_PATTERN_MULTIPLIERS = {
    "cycle": 1.20,
    "layered": 1.15,
    "smurfing_fan_in": 1.10,
    "smurfing_fan_out": 1.10,
    "solo": 1.00,
}
DEFAULT_SIZE_FACTOR = 0.03


@dataclass(frozen=True)
class Transaction:
    transaction_id: str
    sender_id: str
    receiver_id: str
    amount: float
    timestamp: datetime


@dataclass(eq=False)
class Account:
    account_id: str
    total_sent: float = 0.0
    total_received: float = 0.0
    transaction_count: int = 0
    incoming_count: int = 0
    outgoing_count: int = 0
    incoming_from: Set[str] = field(default_factory=set)
    outgoing_to: Set[str] = field(default_factory=set)
    transactions: List[Transaction] = field(default_factory=list)
    suspicion_score: float = 0.0
    patterns: List[str] = field(default_factory=list)
    ring_id: Optional[str] = None

    def add_pattern(self, pattern: str) -> None:
        if pattern not in self.patterns:
            self.patterns.append(pattern)

    def has_pattern_containing(self, fragment: str) -> bool:
        return any(fragment in pattern for pattern in self.patterns)

    @property
    def counterparties(self) -> Set[str]:
        return self.incoming_from | self.outgoing_to

    def incoming_transactions(self) -> List[Transaction]:
        return [tx for tx in self.transactions if tx.receiver_id == self.account_id]

    def outgoing_transactions(self) -> List[Transaction]:
        return [tx for tx in self.transactions if tx.sender_id == self.account_id]

    def transactions_by_time(self) -> List[Transaction]:
        return sorted(self.transactions, key=lambda tx: tx.timestamp)


@dataclass(eq=False)
class FraudRing:
    """
    Candidate or final grouping of accounts.

    Candidates carry only ``candidate_id``; ``ring_id`` stays None until
    consolidation accepts the ring and assigns its final sequential id.
    """
    pattern_type: str
    ring_id: Optional[str] = None
    candidate_id: Optional[str] = None
    member_accounts: List[str] = field(default_factory=list)
    account_scores: Dict[str, float] = field(default_factory=dict)
    risk_score: float = 0.0

    def add_account_with_score(self, account_id: str, score: float) -> None:
        if account_id not in self.member_accounts:
            self.member_accounts.append(account_id)
        self.account_scores[account_id] = score

    @property
    def member_key(self) -> Tuple[str, ...]:
        return canonical_member_key(self.member_accounts)

    @property
    def size(self) -> int:
        return len(self.member_accounts)

    def calculate_risk_score(
        self,
        pattern_multipliers: Optional[Dict[str, float]] = None,
        size_factor: float = DEFAULT_SIZE_FACTOR
    ) -> float:
        if not self.account_scores:
            self.risk_score = 0.0
            return self.risk_score

        multipliers = pattern_multipliers or DEFAULT_PATTERN_MULTIPLIERS
        avg_score = sum(self.account_scores.values()) / len(self.account_scores)
        multiplier = multipliers.get(self.pattern_type, 1.0)
        size_multiplier = 1.0 + self.size * size_factor

        self.risk_score = min(100.0, avg_score * multiplier * size_multiplier)
        return self.risk_score


@dataclass(eq=False)
class DetectionResult:
    """Run-scoped context threaded through every pipeline stage."""
    accounts: Dict[str, Account] = field(default_factory=dict)
    transactions: List[Transaction] = field(default_factory=list)
    candidate_rings: List[FraudRing] = field(default_factory=list)
    rings: Dict[str, FraudRing] = field(default_factory=dict)
    alerts: List[Any] = field(default_factory=list)
    suspicious_accounts: List[Dict[str, Any]] = field(default_factory=list)
    fraud_rings: List[Dict[str, Any]] = field(default_factory=list)
    summary: Dict[str, Any] = field(default_factory=dict)
    advanced_analytics: Dict[str, Any] = field(default_factory=dict)
    processing_time: float = 0.0
    _candidate_keys: Set[Tuple[str, ...]] = field(default_factory=set, repr=False)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(account_id)

    def has_candidate(self, member_key: Tuple[str, ...]) -> bool:
        return member_key in self._candidate_keys

    def add_candidate(self, ring: FraudRing) -> FraudRing:
        ring.candidate_id = generate_candidate_id(len(self.candidate_rings) + 1)
        self.candidate_rings.append(ring)
        self._candidate_keys.add(ring.member_key)
        return ring

    def to_report(self) -> Dict[str, Any]:
        return {
            "suspicious_accounts": self.suspicious_accounts,
            "fraud_rings": self.fraud_rings,
            "summary": self.summary,
            "alerts": [alert.to_dict() for alert in self.alerts],
            "advanced_analytics": self.advanced_analytics,
        }
