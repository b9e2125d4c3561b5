"""Storage access: entity repositories, the transaction manager and backend adapters."""
