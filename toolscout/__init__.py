"""toolscout - stealth browser search for job-search tool discovery."""

__version__ = "0.1.0"
