"""
Centralized configuration for the student records backend.

This module consolidates environment-driven settings so they are consistent
across the import pipeline, the web app, and the database utilities.
"""

from __future__ import annotations

import os


BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DB_DIR = os.path.join(BASE_DIR, "db")

# Tables and sequences (schema-qualified)
STUDENT_TABLE = os.getenv("STUDENT_TABLE", "public.student_master")
STUDENT_ID_SEQUENCE = os.getenv("STUDENT_ID_SEQUENCE", "public.student_id_seq")
COLLEGE_TABLE = os.getenv("COLLEGE_TABLE", "public.master_college")

# Bulk import configuration
INSERT_CHUNK_SIZE = int(os.getenv("INSERT_CHUNK_SIZE", "500"))
UPSERT_CHUNK_SIZE = int(os.getenv("UPSERT_CHUNK_SIZE", "250"))
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))

# String-style student ids (e.g. STU_ID_023)
STUID_PREFIX = os.getenv("STUID_PREFIX", "STU_ID_")
STUID_PAD = int(os.getenv("STUID_PAD", "3"))

# Listing
LIST_DEFAULT_LIMIT = 50
LIST_MAX_LIMIT = int(os.getenv("LIST_MAX_LIMIT", "500"))
