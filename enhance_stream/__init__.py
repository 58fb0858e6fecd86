"""
Enhance Stream

Streams text enhancements from pluggable generation backends to clients
over Server-Sent Events, with mid-flight cancellation.
"""

__version__ = "1.0.0"
