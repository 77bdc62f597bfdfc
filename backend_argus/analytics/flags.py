# backend_argus/analytics/flags.py

"""
Central risk flag registry for Argus.
All scorers import flag names and default severities from here.
"""

from __future__ import annotations

from typing import Iterable

from backend_argus.core.models import RiskFlag, Severity

MINT_ACTIVE = "MINT_ACTIVE"
FREEZE_ACTIVE = "FREEZE_ACTIVE"
SERIAL_RUGGER = "SERIAL_RUGGER"
BUNDLE_DETECTED = "BUNDLE_DETECTED"
WASH_TRADING = "WASH_TRADING"
WHALE_DOMINANCE = "WHALE_DOMINANCE"
WHALE_CONCENTRATION = "WHALE_CONCENTRATION"
WHALE_PRESENCE = "WHALE_PRESENCE"
EXTREME_CONCENTRATION = "EXTREME_CONCENTRATION"
LOW_HOLDER_COUNT = "LOW_HOLDER_COUNT"
SUSPICIOUS_VOLUME = "SUSPICIOUS_VOLUME"
HIGH_SCAM_PROBABILITY = "HIGH_SCAM_PROBABILITY"

FLAG_SEVERITIES = {
    # === CRITICAL ===
    FREEZE_ACTIVE: Severity.CRITICAL,
    SERIAL_RUGGER: Severity.CRITICAL,
    WHALE_DOMINANCE: Severity.CRITICAL,
    HIGH_SCAM_PROBABILITY: Severity.CRITICAL,

    # === HIGH (bundle / wash trading escalate by tier) ===
    MINT_ACTIVE: Severity.HIGH,
    BUNDLE_DETECTED: Severity.HIGH,
    WASH_TRADING: Severity.HIGH,
    WHALE_CONCENTRATION: Severity.HIGH,
    EXTREME_CONCENTRATION: Severity.HIGH,

    # === MEDIUM ===
    WHALE_PRESENCE: Severity.MEDIUM,
    LOW_HOLDER_COUNT: Severity.MEDIUM,
    SUSPICIOUS_VOLUME: Severity.MEDIUM,
}

FLAG_DESCRIPTIONS = {
    MINT_ACTIVE: "Mint authority active, unlimited inflation possible",
    FREEZE_ACTIVE: "Freeze authority active, holder tokens can be locked",
    SERIAL_RUGGER: "Creator has previously rugged tokens",
    BUNDLE_DETECTED: "Coordinated bundle wallets detected",
    WASH_TRADING: "Volume inflated by self-trading",
    WHALE_DOMINANCE: "Single wallet holds more than half the supply",
    WHALE_CONCENTRATION: "Single wallet holds more than 30% of supply",
    WHALE_PRESENCE: "Single wallet holds more than 20% of supply",
    EXTREME_CONCENTRATION: "Supply concentrated in very few wallets",
    LOW_HOLDER_COUNT: "Very few unique holders",
    SUSPICIOUS_VOLUME: "24h volume unusually high relative to liquidity",
    HIGH_SCAM_PROBABILITY: "Model assigns at least 50% probability to SCAM",
}


def make_flag(flag_type: str, probability: float = 1.0, severity: Severity | None = None) -> RiskFlag:
    """Build a RiskFlag with the registry severity unless one is given; probability clamped to 0-1."""
    if flag_type not in FLAG_SEVERITIES:
        raise KeyError(f"unknown flag type: {flag_type}")
    p = max(0.0, min(1.0, float(probability)))
    return RiskFlag(flag_type=flag_type, probability=p, severity=severity or FLAG_SEVERITIES[flag_type])


def describe_flag(flag_type: str) -> str:
    return FLAG_DESCRIPTIONS.get(flag_type, "Unknown flag")


def merge_flags(primary: Iterable[RiskFlag], secondary: Iterable[RiskFlag]) -> list[RiskFlag]:
    """primary in order, then secondary flags whose type is not already present."""
    merged = list(primary)
    seen = {f.flag_type for f in merged}
    for flag in secondary:
        if flag.flag_type not in seen:
            merged.append(flag)
            seen.add(flag.flag_type)
    return merged
