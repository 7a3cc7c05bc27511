"""famledger command line interface."""
