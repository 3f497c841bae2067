"""DCA chat service: plan collection and a bridge to the remote DCA agent."""

__version__ = "1.0.0"
