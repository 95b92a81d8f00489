"""Request payload schemas for File and Folio records."""
