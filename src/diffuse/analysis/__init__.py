"""Breaking-change detection, test-coverage heuristic and risk scoring."""
