"""ThesisFlow: collaborative thesis documents with a supervised approval workflow."""

__version__ = "0.1.0"
