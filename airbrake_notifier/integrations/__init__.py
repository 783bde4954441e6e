"""Framework integrations for the Airbrake notifier."""
