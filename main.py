import argparse
import asyncio
import logging
import secrets
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from confidential_voting_engine import ConfidentialTallyEngine
from config.config import FHEConfig, SystemConfig, load_config
from tally import VoteError
from utils.utils import (
    create_performance_report,
    format_duration,
    generate_secure_id,
    save_results,
    setup_logging,
    timed,
)

logger = logging.getLogger(__name__)

DEFAULT_READER = "election_authority"


class ElectionOrchestrator:
    """Drives an engine through a full round of encrypted voting"""

    def __init__(self, config: SystemConfig):
        self.config = config
        if not config.tally_readers:
            config.tally_readers = [DEFAULT_READER]
        self.reader = config.tally_readers[0]
        self.engine = ConfidentialTallyEngine.from_config(config)
        self.decryptor = self.engine.decryption_service()
        self.results: Dict[str, Any] = {
            'run_id': generate_secure_id("run"),
            'engine': {},
            'submissions': {'accepted': 0, 'rejected': 0},
            'rejections': [],
            'tally': []
        }

    async def cast(self, voter: str, option: int, value: int = 1) -> bool:
        ballot = self.engine.encrypt_ballot(voter, value)
        try:
            await self.engine.submit(voter, option, ballot)
        except VoteError as e:
            self.results['submissions']['rejected'] += 1
            self.results['rejections'].append(
                {'voter': voter, 'option': option, 'error': type(e).__name__})
            logger.info(f"Submission from {voter} rejected: {e}")
            return False

        self.results['submissions']['accepted'] += 1
        return True

    async def run_election(self, voters: List[str]) -> Dict[str, Any]:
        logger.info(f"Starting election with {len(voters)} voters")

        for i, voter in enumerate(voters):
            await self.cast(voter, i % self.engine.num_options)

        # Both must be refused without touching state
        if voters:
            await self.cast(voters[0], 0)
        await self.cast(f"0x{secrets.token_hex(20)}", self.engine.num_options)

        with timed("Tally decryption"):
            self.results['tally'] = self.decryptor.decrypt_tallies(self.engine, self.reader)

        self.results['engine'] = self.engine.get_system_metrics()
        logger.info(f"Final tally: {self.results['tally']}")
        return self.results


def build_config(args) -> SystemConfig:
    config = load_config(Path(args.config))
    if args.options is not None:
        config.num_options = args.options
    if args.backend is not None:
        config.fhe_config = FHEConfig(
            backend=args.backend,
            paillier_key_length=config.fhe_config.paillier_key_length)
    # Re-run validation after overrides
    return SystemConfig(**vars(config))


async def run_demo(config: SystemConfig, num_voters: int = 10) -> bool:
    print("=" * 80)
    print("CONFIDENTIAL TALLY ENGINE - DEMONSTRATION")
    print("=" * 80)

    orchestrator = ElectionOrchestrator(config)
    engine = orchestrator.engine
    print(f"\nEngine: {engine.engine_id}")
    print(f"Backend: {engine.compute.backend_name}")
    print(f"Options: {engine.num_options}")
    print(f"Tally reader: {orchestrator.reader}")

    voters = [f"0x{secrets.token_hex(20)}" for _ in range(num_voters)]
    results = await orchestrator.run_election(voters)

    print("\n" + "=" * 40)
    print("ELECTION RESULTS")
    print("=" * 40)
    for i, count in enumerate(results['tally']):
        print(f"  Option {i}: {count} votes")
    print(f"\nAccepted: {results['submissions']['accepted']}")
    print(f"Rejected: {results['submissions']['rejected']}")
    for rejection in results['rejections']:
        print(f"  {rejection['voter'][:12]}... option {rejection['option']}: {rejection['error']}")

    config.ensure_directories()
    report_path = config.results_dir / "demo_report.json"
    save_results(results, report_path)

    if engine.monitor is not None:
        perf_path = config.results_dir / "performance_report.txt"
        with open(perf_path, "w") as f:
            f.write(create_performance_report(engine.monitor))
        submit_stats = engine.monitor.get_summary()['operations'].get('submit')
        if submit_stats:
            print(f"\nAvg submit: {format_duration(submit_stats['avg_duration'])}")
        print(f"Performance report: {perf_path}")

    print(f"Full results saved to: {report_path}")

    expected = [0] * engine.num_options
    for i in range(num_voters):
        expected[i % engine.num_options] += 1
    return results['tally'] == expected


def run_deploy(config: SystemConfig) -> ConfidentialTallyEngine:
    engine = ConfidentialTallyEngine.from_config(config)
    print(f"Engine deployed: {engine.engine_id}")
    print(f"Backend: {engine.compute.backend_name}")
    print(f"Options: {engine.num_options}")
    for option in range(engine.num_options):
        print(f"  Option {option}: {engine.get_tally(option)}")
    return engine


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        description='Confidential Tally Engine')
    parser.add_argument('--voters', type=int, default=10,
                        help='Number of voters')
    parser.add_argument('--options', type=int, default=None,
                        help='Number of options (overrides config)')
    parser.add_argument('--backend', choices=['mock', 'paillier'], default=None,
                        help='Compute backend (overrides config)')
    parser.add_argument('--config', type=str,
                        default='config.yaml', help='Config file path')
    parser.add_argument('--log-level', type=str, default='INFO')
    parser.add_argument(
        '--mode', choices=['demo', 'deploy'], default='demo')

    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    setup_logging(
        'DEBUG' if config.enable_debug_mode else args.log_level,
        config.log_dir / "tally_engine.log")

    if args.mode == 'demo':
        success = asyncio.run(run_demo(config, args.voters))
        sys.exit(0 if success else 1)
    elif args.mode == 'deploy':
        run_deploy(config)
        sys.exit(0)


if __name__ == "__main__":
    main()
