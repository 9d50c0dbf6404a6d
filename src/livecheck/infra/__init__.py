"""Infrastructure concerns: settings, logging and the error hierarchy."""
