"""Tests for the scenario command-line runner."""

import run_scenarios


class TestMain:
    """Tests for the CLI entry point."""

    def test_single_scenario(self):
        """Test one scenario runs quietly and exits 0."""
        assert run_scenarios.main(['--scenario', 'default-prior', '--samples', '500', '--seed', '1', '--quiet']) == 0

    def test_all_scenarios_verbose(self, capsys):
        """Test running every scenario prints the final summary."""
        assert run_scenarios.main(['--samples', '300', '--seed', '2']) == 0
        out = capsys.readouterr().out
        assert 'FINAL SUMMARY' in out
        assert 'RISKY-REDESIGN' in out

    def test_invalid_samples(self, capsys):
        """Test a non-positive sample count fails with exit code 1."""
        assert run_scenarios.main(['--samples', '0', '--quiet']) == 1
        assert 'num_samples must be positive' in capsys.readouterr().err
