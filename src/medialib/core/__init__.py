"""Core scanning, probing and library logic for medialib."""
