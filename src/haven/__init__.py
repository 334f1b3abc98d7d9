"""
HAVEN - Guided Reprocessing Session Core

This package provides the session lifecycle state machine and the
safety assessment engine that gates every transition of a guided
multi-phase therapeutic session.

IMPORTANT: This is a safety-critical component.
Every transition that resumes or advances a session is gated on a
fresh safety assessment.
"""

__version__ = "0.1.0"
__author__ = "HAVEN Engineering Team"
