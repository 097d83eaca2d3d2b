"""
This module contains containers for the results of an alignment run: per-read alignments and the run-level
statistics accumulated from them.
"""
