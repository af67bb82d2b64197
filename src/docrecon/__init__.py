"""Docrecon - batch document extraction and bank statement reconciliation."""
