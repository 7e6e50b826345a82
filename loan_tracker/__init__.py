"""Vehicle loan tracking: amortization, balances to date and extra payments."""
