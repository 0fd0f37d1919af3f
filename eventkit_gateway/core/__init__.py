"""Store-independent records, errors, configuration and the store interface."""
