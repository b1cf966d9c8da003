"""QuoteVault search core: book providers, fallback search, suggestions."""
