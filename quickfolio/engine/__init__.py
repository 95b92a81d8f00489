"""QuickFolio Engine — configuration, errors, structured logging."""
