#!/usr/bin/env python3
"""
Benchmark Suite for the Confidential Tally Engine
Measures performance across the compute backends and the engine:
- Encryption and input-proof generation/verification
- Homomorphic addition
- End-to-end submission throughput at several voter counts
"""

import asyncio
import json
import logging
import os
import statistics
import sys
import time
from pathlib import Path
from typing import Any, Dict, Tuple

import psutil

sys.path.insert(0, str(Path(__file__).parent.parent))

from confidential_voting_engine import ConfidentialTallyEngine  # noqa: E402
from fhe import MockComputeService, PaillierComputeService  # noqa: E402
from utils import PerformanceMonitor, create_performance_report, get_system_info  # noqa: E402

LOG_DIR = Path(__file__).parent / 'logs'
LOG_DIR.mkdir(exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(LOG_DIR / 'benchmark.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

CONTEXT = "0xBenchmarkEngine"
VOTER = "0xBenchmarkVoter"


class BenchmarkSuite:
    """Benchmark suite over the mock and Paillier backends"""

    def __init__(self, paillier_key_length: int = 1024):
        self.paillier_key_length = paillier_key_length
        self.results = {
            'backends': {},
            'engine': {},
            'system_info': get_system_info()
        }

    def measure_time_and_memory(self, func, *args, **kwargs) -> Tuple[Any, float, float]:
        """Measure execution time and memory usage"""
        process = psutil.Process(os.getpid())
        mem_before = process.memory_info().rss / 1024 / 1024  # MB

        start_time = time.time()
        result = func(*args, **kwargs)
        elapsed_time = time.time() - start_time

        mem_after = process.memory_info().rss / 1024 / 1024  # MB
        return result, elapsed_time, mem_after - mem_before

    def run_multiple_trials(self, func, trials: int = 10) -> Dict[str, float]:
        """Run multiple trials and compute statistics"""
        times = []
        memories = []

        for _ in range(trials):
            _, elapsed, mem_delta = self.measure_time_and_memory(func)
            times.append(elapsed)
            memories.append(mem_delta)

        return {
            'mean_time': statistics.mean(times),
            'median_time': statistics.median(times),
            'std_time': statistics.stdev(times) if len(times) > 1 else 0,
            'min_time': min(times),
            'max_time': max(times),
            'mean_memory_mb': statistics.mean(memories),
            'trials': trials
        }

    def _log_stats(self, stats: Dict[str, float]):
        logger.info(
            f"   Mean: {stats['mean_time']*1000:.2f}ms (±{stats['std_time']*1000:.2f}ms)")

    def benchmark_backend(self, name: str, service, trials: int):
        """Benchmark the collaborator operations of one compute service"""
        logger.info("\n" + "=" * 80)
        logger.info(f"BENCHMARKING {name.upper()} BACKEND")
        logger.info("=" * 80)
        results = self.results['backends'][name] = {}

        logger.info("\n[1] Encrypted input with proof")
        stats = self.run_multiple_trials(
            lambda: service.create_encrypted_input(CONTEXT, VOTER).add32(1).encrypt(),
            trials=trials)
        results['encrypt_input'] = stats
        self._log_stats(stats)

        logger.info("\n[2] Proof verification")
        encrypted = service.create_encrypted_input(CONTEXT, VOTER).add32(1).encrypt()
        handle = encrypted.handles[0]
        stats = self.run_multiple_trials(
            lambda: service.verify_proof(CONTEXT, VOTER, handle, encrypted.input_proof),
            trials=trials)
        results['verify_proof'] = stats
        self._log_stats(stats)

        logger.info("\n[3] Homomorphic addition")
        total = service.trivial_encrypt(0)
        stats = self.run_multiple_trials(
            lambda: service.homomorphic_add(total, handle), trials=trials)
        results['homomorphic_add'] = stats
        self._log_stats(stats)

        results['proof_size_bytes'] = len(encrypted.input_proof)
        logger.info(f"\n[4] Proof Size: {results['proof_size_bytes']} bytes")

    async def benchmark_engine(self, voter_counts=(10, 50, 100)):
        """Benchmark end-to-end submission on the mock backend"""
        logger.info("\n" + "=" * 80)
        logger.info("BENCHMARKING ENGINE (END-TO-END)")
        logger.info("=" * 80)

        scalability_results = []
        monitor = PerformanceMonitor()

        for num_voters in voter_counts:
            logger.info(f"\n[Scaling Test] {num_voters} voters")
            engine = ConfidentialTallyEngine(
                num_options=3,
                engine_id=f"benchmark_{num_voters}",
                readers=["benchmark_reader"],
                monitor=monitor
            )
            voters = [f"0x{i:040x}" for i in range(num_voters)]

            start = time.time()
            ballots = [engine.encrypt_ballot(voter) for voter in voters]
            encrypt_time = time.time() - start

            start = time.time()
            for i, (voter, ballot) in enumerate(zip(voters, ballots)):
                await engine.submit(voter, i % 3, ballot)
            casting_time = time.time() - start
            logger.info(
                f"   Ballot Casting: {casting_time:.2f}s ({num_voters/casting_time:.2f} ballots/s)")

            start = time.time()
            tally = engine.decryption_service().decrypt_tallies(engine, "benchmark_reader")
            tally_time = time.time() - start
            logger.info(f"   Tally Decryption: {tally_time:.4f}s -> {tally}")

            scalability_results.append({
                'num_voters': num_voters,
                'encrypt_time': encrypt_time,
                'casting_time': casting_time,
                'casting_throughput': num_voters / casting_time,
                'tally_time': tally_time,
                'total_time': encrypt_time + casting_time + tally_time
            })

        self.results['engine']['scalability'] = scalability_results
        self.results['engine']['performance'] = monitor.get_summary()
        logger.info("\n" + create_performance_report(monitor))
        monitor.save_metrics(Path(__file__).parent / 'results' / 'engine_metrics.json')

    async def run_all_benchmarks(self):
        """Run complete benchmark suite"""
        logger.info("\n" + "=" * 80)
        logger.info("CONFIDENTIAL TALLY ENGINE BENCHMARK SUITE")
        logger.info("=" * 80)

        total_start = time.time()

        self.benchmark_backend("mock", MockComputeService(), trials=200)
        self.benchmark_backend(
            "paillier", PaillierComputeService(key_length=self.paillier_key_length), trials=20)
        await self.benchmark_engine()

        total_time = time.time() - total_start
        logger.info("\n" + "=" * 80)
        logger.info(f"BENCHMARKING COMPLETE - Total time: {total_time:.2f}s")
        logger.info("=" * 80)

        self.save_results()
        self.print_summary()

    def save_results(self):
        """Save benchmark results to JSON"""
        results_dir = Path(__file__).parent / 'results'
        results_dir.mkdir(exist_ok=True)

        results_file = results_dir / 'benchmark_results.json'
        with open(results_file, 'w') as f:
            json.dump(self.results, f, indent=2, default=str)

        logger.info(f"\n Results saved to: {results_file}")

    def print_summary(self):
        logger.info("\n" + "=" * 80)
        logger.info("PERFORMANCE SUMMARY")
        logger.info("=" * 80)

        for name, results in self.results['backends'].items():
            logger.info(f"\n{name} backend:")
            logger.info(
                f"   Encrypt + Proof:   {results['encrypt_input']['mean_time']*1000:.3f} ms")
            logger.info(
                f"   Verify Proof:      {results['verify_proof']['mean_time']*1000:.3f} ms")
            logger.info(
                f"   Homomorphic Add:   {results['homomorphic_add']['mean_time']*1000:.3f} ms")

        logger.info("\nEnd-to-End Engine Performance:")
        for result in self.results['engine']['scalability']:
            logger.info(f"   {result['num_voters']} voters: "
                        f"{result['total_time']:.2f}s total, "
                        f"{result['casting_throughput']:.2f} ballots/s")

        logger.info("\n" + "=" * 80)


async def main():
    benchmark = BenchmarkSuite()
    await benchmark.run_all_benchmarks()


if __name__ == "__main__":
    asyncio.run(main())
