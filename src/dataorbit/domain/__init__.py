"""Domain layer: the Database aggregate and the services that maintain it."""
