"""
GAQ CLI - Command Line Interface for the Guild Auction Queue

Main entry point for all CLI commands.
"""

import click
from pathlib import Path

from gaq.utils.logger import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (default: GAQ_DATA_DIR or ~/.gaq)")
@click.option(
    "--config", "config_path", default=None,
    type=click.Path(exists=True, dir_okay=False), help="JSON config file",
)
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir, config_path):
    """Guild Auction Queue - Escrowed bids gated by guild membership"""
    import logging
    from gaq.core.config import load_config

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(str(e))

    config.data_dir = Path(data_dir or config.data_dir).expanduser()
    if config.log_dir is not None:
        config.log_dir = Path(config.log_dir).expanduser()
    config.ensure_dirs()

    level = logging.DEBUG if debug else getattr(logging, config.log_level)
    setup_logging(level=level, log_dir=str(config.log_path))

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["data_dir"] = config.data_dir


def _open_storage(ctx):
    from gaq.core.storage import StorageManager

    config = ctx.obj["config"]
    return StorageManager(config.data_dir, db_name=config.db_name)


def _load_queue(ctx, address: str):
    """Rebuild a persisted queue on a fresh chain; None if unknown."""
    from gaq.core.chain import Chain
    from gaq.core.queue import BidEscrowQueue
    from gaq.crypto import hex_to_bytes, is_valid_address

    if not is_valid_address(address):
        raise click.BadParameter(f"not a 0x-prefixed 20-byte address: {address}")

    storage = _open_storage(ctx)
    chain = Chain(chain_id=ctx.obj["config"].chain_id)
    queue = BidEscrowQueue(chain, address=hex_to_bytes(address), storage_manager=storage)
    if not queue.initialized:
        storage.close()
        return None, None
    return queue, storage


# =============================================================================
# Account Commands
# =============================================================================


@cli.group()
def account():
    """Account management commands"""
    pass


@account.command("new")
@click.option("--show-key", is_flag=True, help="Also print the private key")
def account_new(show_key):
    """Generate a new secp256k1 account"""
    from gaq.crypto import generate_keypair, bytes_to_hex

    kp = generate_keypair()
    click.echo(f"✓ Account created")
    click.echo(f"  Address: {kp.address_hex}")
    if show_key:
        click.echo(f"  Private key: {bytes_to_hex(kp.private_key)}")
        click.echo(f"  ⚠️  Anyone holding this key controls the account!")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--persist", is_flag=True, help="Store the demo queue in the data directory")
@click.option("--lockup", default=None, type=click.IntRange(min=0), help="Lock-up period in seconds (default: per chain)")
@click.pass_context
def demo(ctx, persist, lockup):
    """Walk a queue through submit, increase, withdraw, cancel and accept"""
    from gaq.core.chain import Chain
    from gaq.core.errors import QueueError
    from gaq.core.membership import MembershipRegistry
    from gaq.core.queue import QueueFactory
    from gaq.core.token import ERC20Token
    from gaq.crypto import generate_keypair, short_hex

    click.echo("=" * 60)
    click.echo("  GUILD AUCTION QUEUE - DEMO")
    click.echo("=" * 60)
    click.echo()

    # Setup
    click.echo("📦 Deploying token, guild and queue...")
    config = ctx.obj["config"]
    chain = Chain(chain_id=config.chain_id)
    storage = _open_storage(ctx) if persist else None

    alice = generate_keypair().address
    bob = generate_keypair().address
    member = generate_keypair().address
    destination = generate_keypair().address

    token = ERC20Token(chain, name="Guild Token", symbol="GLD")
    chain.deploy(token)
    guild = MembershipRegistry(chain)
    chain.deploy(guild)
    guild.add_member(member, shares=1)

    # Fresh factory address per run so persisted queues never collide
    factory = QueueFactory(chain, config=config, storage_manager=storage)
    chain.deploy(factory, creator=generate_keypair().address)
    if lockup is None:
        queue_address = factory.create_default(token.address, guild.address, destination)
    else:
        queue_address = factory.create(
            token.address, guild.address, destination, lockup, config.default_min_shares
        )
    queue = factory.get_queue(queue_address)
    period = queue.config.lockup_duration

    for bidder in (alice, bob):
        token.mint(bidder, 1000)
        token.approve(bidder, queue.address, 1000)

    click.echo(f"  ✓ Queue at {short_hex(queue.address, 14)}..., lock-up {period}s")
    click.echo()

    # Bids
    click.echo("💰 Alice bids 100, Bob bids 200...")
    alice_bid = queue.submit_bid(alice, 100, b"alice: front page slot")
    bob_bid = queue.submit_bid(bob, 200, b"bob: front page slot")
    click.echo(f"  ✓ Bids {alice_bid} and {bob_bid} escrowed, total {queue.escrowed_total()}")

    queue.increase_bid(alice, 50, alice_bid)
    click.echo(f"  ✓ Alice tops up to {queue.bids(alice_bid).amount}")

    if period > 0:
        try:
            queue.cancel_bid(bob, bob_bid)
        except QueueError as e:
            click.echo(f"  ✓ Early cancel rejected: {e}")
    click.echo()

    # Lock-up
    click.echo(f"⏳ Waiting out the {period}s lock-up...")
    chain.increase_time(period)
    chain.mine()
    queue.withdraw_bid(alice, 30, alice_bid)
    click.echo(f"  ✓ Alice withdraws 30, bid now {queue.bids(alice_bid).amount}")
    refund = queue.cancel_bid(bob, bob_bid)
    click.echo(f"  ✓ Bob cancels, refunded {refund}")
    click.echo()

    # Accept
    click.echo("⚖️  Guild member accepts Alice's bid...")
    payout = queue.accept_bid(member, alice_bid)
    click.echo(f"  ✓ {payout} settled to destination {short_hex(destination, 14)}...")
    click.echo()

    # Stats
    click.echo("📊 Final Statistics:")
    click.echo(f"  Queue: {queue.stats()['bids']}")
    click.echo(f"  Escrowed: {queue.escrowed_total()} (queue balance {token.balance_of(queue.address)})")
    click.echo(f"  Destination balance: {token.balance_of(destination)}")
    click.echo(f"  Events: {len(chain.events)}")
    if storage:
        storage.save_clock(chain.block_number, chain.timestamp)
        storage.close()
        click.echo(f"  Saved to: {ctx.obj['data_dir']}")
    click.echo()
    click.echo("✅ Demo complete!")


# =============================================================================
# Queue Commands
# =============================================================================


@cli.group()
def queue():
    """Persisted queue inspection commands"""
    pass


@queue.command("list")
@click.pass_context
def queue_list(ctx):
    """List persisted queues"""
    from gaq.crypto import bytes_to_hex

    storage = _open_storage(ctx)
    addresses = storage.list_queues()
    storage.close()

    if not addresses:
        click.echo("No queues found.")
        return

    for address in addresses:
        click.echo(f"  {bytes_to_hex(address)}")


@queue.command("show")
@click.argument("address")
@click.pass_context
def queue_show(ctx, address):
    """Show a persisted queue and its bids"""
    from gaq.crypto import bytes_to_hex

    q, storage = _load_queue(ctx, address)
    if q is None:
        click.echo(f"❌ Queue '{address}' not found")
        return

    click.echo(f"Queue {bytes_to_hex(q.address)}")
    click.echo("-" * 40)
    click.echo(f"  Token: {bytes_to_hex(q.config.token)}")
    click.echo(f"  Membership: {bytes_to_hex(q.config.membership)}")
    click.echo(f"  Destination: {bytes_to_hex(q.config.destination)}")
    click.echo(f"  Lock-up: {q.config.lockup_duration}s")
    click.echo(f"  Min shares: {q.config.min_shares}")
    click.echo(f"  Escrowed: {q.escrowed_total()}")
    click.echo("")
    click.echo(f"  Bids ({q.next_bid_id}):")
    for bid in q.all_bids():
        click.echo(
            f"    {bid.bid_id}. {bid.status.name:<8} amount={bid.amount} "
            f"submitter={bytes_to_hex(bid.submitter)[:12]}..."
        )
    click.echo(f"  Events: {len(storage.load_events(q.address))}")
    storage.close()


@queue.command("export")
@click.argument("address")
@click.option("--out", default=None, type=click.Path(dir_okay=False), help="Write JSON to this file")
@click.pass_context
def queue_export(ctx, address, out):
    """Export a persisted queue as a JSON snapshot"""
    from gaq.core.queue import save_snapshot

    q, storage = _load_queue(ctx, address)
    if q is None:
        click.echo(f"❌ Queue '{address}' not found")
        return
    storage.close()

    snapshot = q.snapshot()
    if out:
        path = save_snapshot(snapshot, out)
        click.echo(f"✓ Snapshot written to {path}")
    else:
        click.echo(snapshot.to_json())


# =============================================================================
# Stats Command
# =============================================================================


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show persisted data statistics"""
    storage = _open_storage(ctx)
    queues = storage.list_queues()
    events = storage.load_events()
    clock = storage.get_clock()
    storage.close()

    click.echo("GAQ Statistics")
    click.echo("-" * 40)
    click.echo(f"  Version: 0.1.0")
    click.echo(f"  Data dir: {ctx.obj['data_dir']}")
    click.echo(f"  Database: {ctx.obj['config'].db_name}")
    click.echo(f"  Queues: {len(queues)}")
    click.echo(f"  Events: {len(events)}")
    if clock:
        click.echo(f"  Last block: {clock[0]} (t={clock[1]})")

    counts = {}
    for event in events:
        counts[event["name"]] = counts.get(event["name"], 0) + 1
    for name, count in sorted(counts.items()):
        click.echo(f"    {name}: {count}")


if __name__ == "__main__":
    cli()
