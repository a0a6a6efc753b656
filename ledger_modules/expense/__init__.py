"""Direct expenses paid by cash, bank, card or UPI."""
