"""PhishMeter: heuristic phishing risk scoring."""
