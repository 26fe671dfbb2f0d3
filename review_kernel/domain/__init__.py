"""Pure domain layer: clock, calendar, workflows, read models.  ZERO I/O."""
