"""Core generation engine, validation and persistence for tenantseed."""
