"""Goal-to-plan generation service."""
