"""Multi-step workflows built on the chain clients."""
