# =============================================================================
# Shared Libraries
# =============================================================================
# Framework-free code for the tabular import pipeline.
# Services import from here; nothing in here imports from services.
# =============================================================================
