"""
Integration tests for the mesh simulator and the batch runner.
"""

import csv
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from simulation.simulator import MeshQueueSimulator, SimulatorConfig
from simulation.runner import BatchRunner, RunConfig, run_single_simulation, RESULT_FIELDS
from src.mac.header import MacHeader, Packet
from src.bias.controller import BiasMode
from src.utils.logger import LogLevel


def run(mode, seed=3, total_time=20.0, **kwargs):
    config = SimulatorConfig(
        mode=mode,
        seed=seed,
        total_time=total_time,
        log_level=LogLevel.CRITICAL,
        **kwargs
    )
    return MeshQueueSimulator(config).run()


def bias_totals(results, key):
    return sum(node['queue'].get('bias', {}).get(key, 0) for node in results['nodes'].values())


class TestSimulatorConfig:
    """Tests for configuration validation."""

    def test_invalid_loss(self):
        """Test loss probabilities outside [0, 1] are rejected."""
        with pytest.raises(ValueError):
            SimulatorConfig(hop_loss_probability=1.5)

    def test_invalid_interval(self):
        """Test a zero packet interval is rejected."""
        with pytest.raises(ValueError):
            SimulatorConfig(packet_interval=0)


class TestMeshQueueSimulator:
    """Tests for short simulation runs."""

    @pytest.mark.parametrize("mode", list(BiasMode))
    def test_runs_in_every_mode(self, mode):
        """Test a short run delivers traffic in each bias mode."""
        results = run(mode)

        assert results['mode'] == mode.name
        assert results['received'] > 0
        assert 0.0 <= results['pdr'] <= 1.0
        assert results['mean_delay'] > 0.0
        assert results['simulation_time'] <= 20.0
        assert len(results['nodes']) == 3

    def test_disabled_mode_never_delays(self):
        """Test no packet is delayed with the bias disabled."""
        results = run(BiasMode.DISABLED)

        assert bias_totals(results, 'delayed_packets') == 0
        for node in results['nodes'].values():
            assert node['queue']['total_delayed'] == 0

    def test_static_mode_delays_far_corner(self):
        """Test the far corner source delays packets in static mode."""
        results = run(BiasMode.STATIC)

        far = max(results['nodes'].values(), key=lambda n: n['hops'])
        assert far['hops'] == 8
        assert far['queue']['bias']['delayed_packets'] > 0
        assert 'search' not in far['queue']['bias']

    def test_static_delay_raises_mean_delay(self):
        """Test static bias raises the mean end-to-end delay."""
        plain = run(BiasMode.DISABLED)
        biased = run(BiasMode.STATIC)

        assert biased['mean_delay'] > plain['mean_delay']

    def test_adaptive_mode_reconfigures(self):
        """Test adaptive mode runs search cycles."""
        results = run(BiasMode.ADAPTIVE)

        assert bias_totals(results, 'reconfigurations') > 0
        far = max(results['nodes'].values(), key=lambda n: n['hops'])
        search = far['queue']['bias']['search']
        assert search['cycles'] > 0
        assert search['best_utility'] > 0.0

    def test_same_seed_same_results(self):
        """Test runs with the same seed are reproducible."""
        first = run(BiasMode.ADAPTIVE, seed=8, total_time=12.0)
        second = run(BiasMode.ADAPTIVE, seed=8, total_time=12.0)

        assert first['received'] == second['received']
        assert first['lost'] == second['lost']
        assert first['mean_delay'] == pytest.approx(second['mean_delay'])

    def test_late_flows_not_started(self):
        """Test flows starting after the end time generate nothing."""
        results = run(BiasMode.DISABLED, total_time=5.0)

        generated = sorted(n['packets_generated'] for n in results['nodes'].values())
        assert generated[0] == 0
        assert generated[1] == 0
        assert generated[2] > 0

    def test_full_loss(self):
        """Test total link loss delivers nothing."""
        results = run(BiasMode.DISABLED, total_time=5.0, hop_loss_probability=1.0)

        assert results['received'] == 0
        assert results['pdr'] == 0.0
        assert results['lost'] > 0

    def test_retry_count_cleared_on_expiry(self):
        """Test retry counts of expired packets are discarded."""
        sim = MeshQueueSimulator(SimulatorConfig(
            mode=BiasMode.DISABLED,
            total_time=5.0,
            hop_loss_probability=1.0,
            max_queue_delay=0.002,
            log_level=LogLevel.CRITICAL
        ))

        sim.run()

        queued = {e.packet.uid for node in sim.nodes for e in node.queue.queue}
        assert sum(node.queue.expired_packets for node in sim.nodes) > 0
        assert set(sim.retries) <= queued

    def test_retry_count_cleared_on_drop(self):
        """Test a retry shed by a full queue discards its retry count."""
        sim = MeshQueueSimulator(SimulatorConfig(
            mode=BiasMode.DISABLED,
            max_queue_size=1,
            log_level=LogLevel.CRITICAL
        ))
        node = sim.nodes[0]
        header = MacHeader(addr1=sim.gateway, addr2=node.address,
                           addr3=sim.gateway, qos_tid=0)
        node.queue.enqueue(Packet(), header)
        retry = Packet()
        sim.retries[retry.uid] = 1

        node.queue.push_front(retry, header)

        assert retry.uid not in sim.retries
        assert sim.sink.lost == 1


class TestBatchRunner:
    """Tests for repeated runs."""

    def test_single_run_row(self):
        """Test the result row of one run."""
        row = run_single_simulation(RunConfig(mode=BiasMode.STATIC, run_id=0, seed=1, total_time=6.0))

        assert row['error'] is None
        assert row['mode'] == 'STATIC'
        assert 0.0 <= row['pdr'] <= 1.0

    def test_run_configs_share_seeds_across_modes(self, tmp_path):
        """Test every mode uses the same seed per repeat."""
        runner = BatchRunner(repeats=2, total_time=4.0, seed_base=100,
                             output_file=str(tmp_path / "results.csv"))

        configs = runner._generate_run_configs()

        assert len(configs) == 6
        assert {c.seed for c in configs if c.mode is BiasMode.STATIC} == {100, 101}
        assert {c.seed for c in configs if c.mode is BiasMode.ADAPTIVE} == {100, 101}

    def test_run_save_and_summarize(self, tmp_path):
        """Test running, saving the CSV and summarizing per mode."""
        output = tmp_path / "out" / "results.csv"
        progress = []
        runner = BatchRunner(
            repeats=2,
            total_time=6.0,
            output_file=str(output),
            on_progress=lambda done, total, result: progress.append((done, total))
        )

        results = runner.run(show_progress=False)
        runner.save_results()

        assert len(results) == 6
        assert progress[-1] == (6, 6)
        assert all(r['error'] is None for r in results)

        with open(output, newline='') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 6
        assert list(rows[0].keys()) == RESULT_FIELDS

        summary = runner.summarize()
        assert set(summary.index) == {'DISABLED', 'STATIC', 'ADAPTIVE'}
        assert ('pdr', 'mean') in summary.columns
        assert ('mean_delay', 'std') in summary.columns


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
