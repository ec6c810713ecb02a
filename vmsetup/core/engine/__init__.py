"""Engine: the step executor and the conditional installer."""
