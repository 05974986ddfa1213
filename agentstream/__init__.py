"""agentstream - streaming agent responses with interleaved tool calls over SSE."""

__version__ = "0.1.0"
