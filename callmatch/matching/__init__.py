"""Caller identity resolution and booking matching.

Walks each fetched booking record for candidate phones, dates and names,
keeps the records that match the caller, and reduces them to one
``Found``, ``NotFound`` or ``Ambiguous`` result.
"""
