import sys
import json
import asyncio
import logging
import argparse
from colorama import init, Fore, Style

from config import get_radar_config, API_HOST, API_PORT, LOG_LEVEL
from chain_adapters import get_adapter_for_chain
from radar import ScanCoordinator, ScanScheduler

init(autoreset=True)

logger = logging.getLogger("radar")


def print_summary(summary):
    """Console view of one scan cycle"""
    print(f"\n{Fore.CYAN}{'='*50}")
    if summary.is_failure:
        print(f"{Fore.RED}❌ {summary.error}")
        print(f"{Fore.RED}   Scan: {summary.scan_error}")
        print(f"{Fore.RED}   DB:   {summary.db_error}")
        print(f"{Fore.CYAN}{'='*50}\n")
        return

    if summary.error:
        print(f"{Fore.YELLOW}⚠️  {summary.error}: {summary.details}")
    else:
        blocks = f"{summary.blocks_scanned[0]}-{summary.blocks_scanned[1]}" if summary.blocks_scanned else "none"
        print(f"{Fore.GREEN}🔍 Blocks {blocks} | events: {summary.total_events} | new: {summary.new_tokens_found}")

    for token in summary.tokens:
        score_color = Fore.GREEN if token.is_spiking else (Fore.YELLOW if token.score >= 15 else Fore.RED)
        spike = " 🔥" if token.is_spiking else ""
        print(
            f"{score_color}{token.score:>2}/30{Style.RESET_ALL} "
            f"{Fore.WHITE}{token.symbol:<12} {token.token_type.value:<9} "
            f"${token.liquidity:>9,.0f}  {token.paired_with:<4} "
            f"{token.address}{spike}"
        )
    if not summary.tokens:
        print(f"{Fore.YELLOW}No tokens in the last freshness window")
    print(f"{Fore.CYAN}{'='*50}\n")


def build_coordinator(config):
    chain = get_adapter_for_chain(config.get('chain_name', 'base'), config)
    if chain is None or not chain.connect():
        print(f"{Fore.RED}❌ Could not connect to {config['rpc_url']}. Check BASE_RPC_URL.")
        return None
    return ScanCoordinator.from_config(config, chain)


async def run_once(coordinator, as_json: bool) -> int:
    summary = await coordinator.run_cycle()
    if as_json:
        print(json.dumps(summary.to_response(), indent=2))
    else:
        print_summary(summary)
    return 0 if summary.status_code == 200 else 1


async def run_scheduler(coordinator, config):
    scheduler = ScanScheduler(coordinator, config, on_summary=print_summary)
    await scheduler.run_forever()


def main(argv=None):
    parser = argparse.ArgumentParser(description="Base new-token radar (Uniswap V4 pools)")
    parser.add_argument("--once", action="store_true", help="Run a single scan cycle and exit")
    parser.add_argument("--json", action="store_true", help="With --once, print the API payload as JSON")
    parser.add_argument("--serve", action="store_true", help="Serve the token API with background scanning")
    parser.add_argument("--host", default=API_HOST)
    parser.add_argument("--port", type=int, default=API_PORT)
    parser.add_argument("--config", default=None, help="Path to a radar.yaml override file")
    parser.add_argument("--seed", type=int, default=None, help="Seed for placeholder market data")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    overrides = {'market_data_seed': args.seed} if args.seed is not None else None
    config = get_radar_config(args.config, overrides)

    print(f"{Fore.GREEN}🚀 Base Token Radar")
    print(f"{Fore.CYAN}📡 PoolManager: {config['pool_manager_address']}")
    print(f"{Fore.CYAN}🪙 Reference assets: {', '.join(config['reference_assets'])}\n")

    coordinator = build_coordinator(config)
    if coordinator is None:
        return 1

    if args.once:
        return asyncio.run(run_once(coordinator, args.json))

    if args.serve:
        from api_server import run_server
        scheduler = ScanScheduler(coordinator, config)
        run_server(coordinator, args.host, args.port, scheduler)
        return 0

    try:
        asyncio.run(run_scheduler(coordinator, config))
    except KeyboardInterrupt:
        print(f"{Fore.YELLOW}Stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
