"""Offline Identity Badge Scanner.

Captures a photographed identity badge from a live camera feed, cleans the
image for Tesseract OCR, and parses the recognized text into a structured
identity record.
"""
