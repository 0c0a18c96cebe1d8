"""Domain services: timezone, recurrence, templates, tasks and dispatches."""
