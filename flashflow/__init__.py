"""FlashFlow scheduling engine: step ladders, a stability model, and the router between them."""
