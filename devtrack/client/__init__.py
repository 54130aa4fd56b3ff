"""Editor-side agent: typing detection and event delivery."""
