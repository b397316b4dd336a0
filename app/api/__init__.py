"""HTTP endpoints and error envelopes."""
