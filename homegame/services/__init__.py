"""Pure calculation services: settlement, chip distribution and tally."""
