"""
Broker services.

- level_calculator: Pure level evaluation against the level table
- broker_level_service: Team aggregation and level persistence
- dividend_service: Daily and monthly team dividends
"""

from app.services.broker.broker_level_service import (
    BrokerLevelResult,
    BrokerLevelService,
    LevelRunResult,
)
from app.services.broker.dividend_service import (
    DividendRunResult,
    DividendService,
)
from app.services.broker.level_calculator import (
    BrokerMetrics,
    LevelEvaluation,
    calculate_level,
    evaluate_level,
)


__all__ = [
    "BrokerLevelService",
    "BrokerLevelResult",
    "LevelRunResult",
    "DividendService",
    "DividendRunResult",
    "BrokerMetrics",
    "LevelEvaluation",
    "calculate_level",
    "evaluate_level",
]
