# src/core/enums/oversell_policy.py

from enum import Enum

class OverSellPolicy(str, Enum):
    """
    How a sell larger than the open lot quantity is priced.
    """
    ZERO_COST = "ZERO_COST"
    REJECT = "REJECT"
    PROPORTIONAL_ESTIMATE = "PROPORTIONAL_ESTIMATE"
