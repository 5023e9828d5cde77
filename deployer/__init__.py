"""X402Splitter deploy tooling: networks, cost estimate, deploy, records."""
