"""deepresearch - recursive LLM-assisted web research with chat memory."""

__version__ = "0.1.0"
