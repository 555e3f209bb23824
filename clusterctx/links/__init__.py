"""Deep links into the systems an operator pivots to."""
