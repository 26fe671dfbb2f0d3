"""Read-only query selectors."""

from review_kernel.selectors.access_selector import AccessSelector
from review_kernel.selectors.clarification_selector import ClarificationSelector

__all__ = ["AccessSelector", "ClarificationSelector"]
