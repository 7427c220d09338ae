# =============================================================================
# src/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Command-line access to the retrieval core for operators and developers.
#
#   INGESTION (ingest.py)
#      ingest / reprocess / remove documents, search a tenant's index, and
#      print index and processing statistics.
#
# Architecture Notes:
#   - argparse for argument parsing.
#   - Heavy imports (extraction libraries, providers) are deferred inside
#     functions so `--help` stays fast.
#   - Each invocation builds its own services via src.main.build_services
#     and loads the hybrid index from the SQLite store before running.
# =============================================================================

"""CLI tools for the document retrieval core.

- ``python -m src.cli ingest|search|reprocess|remove|stats``
"""
