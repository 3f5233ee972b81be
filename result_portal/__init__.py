"""University Result Portal.

Publishes exam results read from scanned marksheets: Tesseract OCR and
rule-based field extraction on upload, a JSON-backed record store, and a
FastAPI service for student lookups and administration.
"""

__version__ = "1.0.0"
