"""
Recalibration knobs for the valuation engine
Defaults are compiled in; environment variables override them at load time
"""
from dataclasses import dataclass
from typing import Optional
import os

ENV_PREFIX = "EXIT_ENGINE_"


def _env_float(name: str, default: float) -> float:
    """Read a float from EXIT_ENGINE_<name>, falling back to default"""
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class ValuationConfig:
    """Multiple blending parameters"""
    dlom: float = 0.30  # Discount for lack of marketability on peer multiples
    peer_proxy_multiplier: float = 1.2  # Listed-peer proxy = industry median * markup
    weight_industry: float = 0.70
    weight_peer: float = 0.30

    def validate(self) -> bool:
        if not 0 <= self.dlom < 1:
            raise ValueError(f"DLOM must be in [0, 1), got {self.dlom}")
        if self.peer_proxy_multiplier <= 0:
            raise ValueError(f"Peer proxy multiplier must be positive, got {self.peer_proxy_multiplier}")
        if self.weight_industry < 0 or self.weight_peer < 0:
            raise ValueError("Multiple weights cannot be negative")
        if abs(self.weight_industry + self.weight_peer - 1.0) > 0.001:
            raise ValueError(
                f"Multiple weights must sum to 1, got {self.weight_industry + self.weight_peer}"
            )
        return True

    @classmethod
    def from_env(cls) -> "ValuationConfig":
        config = cls(
            dlom=_env_float("DLOM", cls.dlom),
            peer_proxy_multiplier=_env_float("PEER_PROXY_MULTIPLIER", cls.peer_proxy_multiplier),
            weight_industry=_env_float("WEIGHT_INDUSTRY", cls.weight_industry),
            weight_peer=_env_float("WEIGHT_PEER", cls.weight_peer),
        )
        config.validate()
        return config


@dataclass(frozen=True)
class DealConfig:
    """Defaults for the deal-structure scenario generator"""
    default_fee_rate_pct: float = 3.0  # Advisory fee on founder gross
    default_earnout_probability_pct: float = 50.0
    ineligible_penalty: float = 0.0  # Added to the total score of ineligible archetypes

    def validate(self) -> bool:
        if not 0 <= self.default_fee_rate_pct <= 100:
            raise ValueError(f"Fee rate must be in [0, 100], got {self.default_fee_rate_pct}")
        if not 0 <= self.default_earnout_probability_pct <= 100:
            raise ValueError(
                f"Earn-out probability must be in [0, 100], got {self.default_earnout_probability_pct}"
            )
        if self.ineligible_penalty > 0:
            raise ValueError("Ineligible penalty cannot raise a score")
        return True

    @classmethod
    def from_env(cls) -> "DealConfig":
        config = cls(
            default_fee_rate_pct=_env_float("FEE_RATE_PCT", cls.default_fee_rate_pct),
            default_earnout_probability_pct=_env_float(
                "EARNOUT_PROBABILITY_PCT", cls.default_earnout_probability_pct
            ),
            ineligible_penalty=_env_float("INELIGIBLE_PENALTY", cls.ineligible_penalty),
        )
        config.validate()
        return config


_valuation_config: Optional[ValuationConfig] = None
_deal_config: Optional[DealConfig] = None


def get_valuation_config() -> ValuationConfig:
    """Process-wide valuation config, read from the environment once"""
    global _valuation_config
    if _valuation_config is None:
        _valuation_config = ValuationConfig.from_env()
    return _valuation_config


def get_deal_config() -> DealConfig:
    """Process-wide deal config, read from the environment once"""
    global _deal_config
    if _deal_config is None:
        _deal_config = DealConfig.from_env()
    return _deal_config
