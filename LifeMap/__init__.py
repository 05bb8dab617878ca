"""
LifeMap package.

Experience timeline, record storage, relationship-graph layout and the
Gemini-backed insight gateway for the personal life-map journal.
"""
import logging

# Applications using this package should configure their own logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())

VERSION = "0.1.0"
