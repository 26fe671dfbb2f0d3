"""
Review Kernel

Token-gated review and clarification workflow for labor billing:
- Customer accept/dispute of a weekly time report via an emailed link
- Threaded clarification of ambiguous time entries
- Idempotent visit tracking on opaque access tokens
- Terminal-state protection enforced at the store
- Hash-chained audit trail of every decision
"""

__version__ = "0.1.0"
