"""
AI Interview Session Core.

Session lifecycle, per-answer evaluation pipeline and report synthesis
for structured AI-evaluated interviews.
"""
__version__ = "0.1.0"
