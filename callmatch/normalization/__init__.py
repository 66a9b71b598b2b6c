"""Normalization package.

One normalizer per caller identity field.  Each normalizer takes a raw,
possibly voice-transcribed value and returns a canonical form, raising a
:class:`callmatch.core.errors.ValidationError` subclass when the value cannot
be normalized.  All normalizers are idempotent.
"""
