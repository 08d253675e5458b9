"""Bulk archive ingestion pipeline.

This module fetches, decompresses, parses and filters bulk archives.
It reconciles included records into the entity store with checkpoints.
"""
