"""Engine — recipe interpretation and wine command launches."""
