"""Package whose submodules count as internal."""
