"""
IntelliBrowse

An autonomous web agent that answers natural-language instructions by
reasoning with a hosted model and acting through browser, screen-parsing
and document tools.
"""

__version__ = "0.1.0"
