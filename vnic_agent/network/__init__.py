"""Host network convergence checks for secondary VNICs."""
