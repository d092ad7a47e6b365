"""Order lifecycle: state machines, catering, repository and service."""
