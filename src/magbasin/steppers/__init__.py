from .base import ButcherTableau, StepperMeta
from .cash_karp import CASH_KARP_TABLEAU, CashKarp54, StepResult

__all__ = ["ButcherTableau", "StepperMeta", "CASH_KARP_TABLEAU", "CashKarp54", "StepResult"]
