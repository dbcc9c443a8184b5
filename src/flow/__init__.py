"""
Presentation glue for the app flow.

Modules:
- viewmodels: coordinator projection and the generic screen view model
- screens: screen definitions and the root coordinator
- handler: text command front end and console entry point
"""

__all__ = [
    "handler",
    "screens",
    "viewmodels",
]
