"""Wine label and receipt document understanding.

Turns raw OCR text from photographed wine labels and purchase receipts
into structured data: document classification, rule-based field
extraction, and a memory-aware cache for expensive OCR results.
"""
