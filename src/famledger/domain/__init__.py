"""Domain layer for famledger: entities, pure finance logic and services."""
