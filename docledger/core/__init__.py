"""Repository core: addressing, cancellation, option fold and orchestration."""
