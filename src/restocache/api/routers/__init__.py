"""API routers for restocache."""
