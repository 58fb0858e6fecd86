"""Enhancement streaming domain: models, backends, transport and services."""
