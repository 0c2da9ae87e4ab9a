"""Domain rules and API I/O schemas for the back office."""
