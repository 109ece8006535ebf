"""Command-line interface for tenantseed."""

import click
import logging
import sys
import json
import yaml
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

from tenantseed.core.database import DatabaseConnection, DatabaseConfig
from tenantseed.core.dependency_resolver import DependencyResolver
from tenantseed.core.generator import SchemaRepository, load_document
from tenantseed.core.inserter import DataInserter
from tenantseed.core.models import SeedConfig
from tenantseed.core.seeder import TenantSeeder
from tenantseed.core.validator import SchemaValidator


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from JSON or YAML file."""
    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    data = load_document(config_file)
    return data or {}


def build_seed_config(config_path: Optional[str], schemas_dir: Optional[str]) -> SeedConfig:
    """Seed configuration from an optional file, with the schemas directory overridable."""
    values = load_config_file(config_path) if config_path else {}
    if schemas_dir:
        values['schemas_dir'] = schemas_dir
    return SeedConfig(**values)


def database_config(database_url: Optional[str]) -> DatabaseConfig:
    """Database configuration from ``--database-url`` or the environment."""
    if database_url:
        return DatabaseConfig(url=database_url)
    return DatabaseConfig.from_env()


def echo_progress(message: str) -> None:
    click.echo(f"  {message}")


database_url_option = click.option(
    '--database-url', envvar='TENANTSEED_DATABASE_URL',
    help='SQLAlchemy database URL (default: TENANTSEED_* environment variables)'
)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True),
              help='Configuration file (JSON/YAML)')
@click.option('--schemas-dir', '-s', type=click.Path(file_okay=False),
              help='Directory holding one schema file per table')
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, config_path: Optional[str], schemas_dir: Optional[str]):
    """tenantseed - Generate and load synthetic data for database tenants."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        ctx.obj = build_seed_config(config_path, schemas_dir)
    except Exception as e:
        click.echo(f"❌ Invalid configuration: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_obj
def validate(config: SeedConfig):
    """Validate every schema file in the schemas directory."""
    validator = SchemaValidator()
    files = SchemaRepository(config.schemas_dir).schema_files()

    if not files:
        click.echo(f"⚠️  No schema files found in {config.schemas_dir}")

    has_errors = False
    for path in files:
        errors = validator.validate_file(path)
        if errors:
            has_errors = True
            click.echo(f"Schema validation errors in {path.name}:", err=True)
            for error in errors:
                click.echo(f" - {error}", err=True)
        else:
            click.echo(f"OK: {path.name}")

    if has_errors:
        sys.exit(1)


@cli.command()
@click.argument('tenant', required=False)
@database_url_option
@click.pass_obj
def seed(config: SeedConfig, tenant: Optional[str], database_url: Optional[str]):
    """Generate and insert data for TENANT in seed order."""
    tenant_id = tenant or config.default_tenant
    try:
        with DatabaseConnection(database_config(database_url)) as db_conn:
            inserter = DataInserter(db_conn, config.tenant_column, config.batch_size)
            seeder = TenantSeeder(config, inserter, progress_callback=echo_progress)
            click.echo(f"🌱 Seeding tenant {tenant_id}...")
            report = seeder.seed(tenant_id)
        click.echo(f"\n✅ Seeded tenant {tenant_id}: {report.total_rows:,} rows "
                   f"in {report.total_time_seconds:.2f}s")
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('tenant', required=False)
@database_url_option
@click.pass_obj
def reset(config: SeedConfig, tenant: Optional[str], database_url: Optional[str]):
    """Delete all data of TENANT in reset order."""
    tenant_id = tenant or config.default_tenant
    try:
        with DatabaseConnection(database_config(database_url)) as db_conn:
            inserter = DataInserter(db_conn, config.tenant_column, config.batch_size)
            seeder = TenantSeeder(config, inserter, progress_callback=echo_progress)
            click.echo(f"🗑️  Resetting tenant {tenant_id}...")
            seeder.reset(tenant_id)
        click.echo(f"\n✅ Reset tenant {tenant_id}")
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('tenant', required=False)
@database_url_option
@click.pass_obj
def reseed(config: SeedConfig, tenant: Optional[str], database_url: Optional[str]):
    """Reset then seed TENANT."""
    tenant_id = tenant or config.default_tenant
    try:
        with DatabaseConnection(database_config(database_url)) as db_conn:
            inserter = DataInserter(db_conn, config.tenant_column, config.batch_size)
            seeder = TenantSeeder(config, inserter, progress_callback=echo_progress)
            click.echo(f"🔄 Reseeding tenant {tenant_id}...")
            report = seeder.reseed(tenant_id)
        click.echo(f"\n✅ Reseeded tenant {tenant_id}: {report.total_rows:,} rows")
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument('tenant', required=False)
@click.option('--table', '-t', 'tables', multiple=True,
              help='Table to generate (repeatable; default: whole seed order)')
@click.option('--count', '-n', type=int, help='Rows per table, overriding the schema count')
@click.option('--output', '-o', type=click.Path(dir_okay=False),
              help='Write rows to a JSON or YAML file instead of stdout')
@click.pass_obj
def generate(config: SeedConfig, tenant: Optional[str], tables: Tuple[str, ...],
             count: Optional[int], output: Optional[str]):
    """Generate data for TENANT without touching the database."""
    tenant_id = tenant or config.default_tenant
    try:
        seeder = TenantSeeder(config, progress_callback=lambda m: click.echo(f"  {m}", err=True))
        data = seeder.generate(tenant_id, tables=list(tables) or None, count=count)

        if output:
            output_path = Path(output)
            with open(output_path, 'w') as f:
                if output_path.suffix.lower() == '.json':
                    json.dump(data, f, indent=2, default=str)
                else:
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
            click.echo(f"💾 Generated data saved to: {output_path}", err=True)
        else:
            click.echo(json.dumps(data, indent=2, default=str))
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command('list-tenants')
@click.option('--table', '-t', 'tables', multiple=True,
              help='Table to inspect (repeatable; default: whole seed order)')
@database_url_option
@click.pass_obj
def list_tenants(config: SeedConfig, tables: Tuple[str, ...], database_url: Optional[str]):
    """List the distinct tenants present in the database."""
    table_names = list(tables) or list(config.seed_order)
    try:
        with DatabaseConnection(database_config(database_url)) as db_conn:
            inserter = DataInserter(db_conn, config.tenant_column, show_progress=False)
            per_table = {}
            all_tenants = set()
            for table in table_names:
                try:
                    per_table[table] = inserter.distinct_tenants(table)
                except Exception as e:
                    per_table[table] = []
                    click.echo(f"⚠️  Error reading {table}: {e}", err=True)
                all_tenants.update(per_table[table])

        click.echo(f"Distinct tenants across tables: {', '.join(sorted(all_tenants)) or '(none)'}")
        for table in table_names:
            click.echo(f"  • {table}: {', '.join(per_table[table]) or '(none)'}")
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_obj
def plan(config: SeedConfig):
    """Show the seed order with the relations between tables."""
    try:
        seeder = TenantSeeder(config)
        errors_by_table = seeder.validate_tables(config.seed_order)
        valid_tables = [t for t in config.seed_order if t not in errors_by_table]
        schemas = [seeder.repository.load(table) for table in valid_tables]
        insertion_plan = DependencyResolver(schemas).create_plan(config.seed_order)

        click.echo("📊 SEED ORDER:")
        for i, table in enumerate(insertion_plan.insertion_order, 1):
            deps = insertion_plan.dependency_graph.get(table, [])
            marker = " (schema invalid)" if table in errors_by_table else ""
            dep_text = f" -> {', '.join(deps)}" if deps else ""
            click.echo(f"   {i:2d}. {table}{dep_text}{marker}")

        click.echo("\n🗑️  RESET ORDER:")
        click.echo(f"   {' → '.join(config.reset_order)}")

        if insertion_plan.independent_tables:
            click.echo(f"\n🔗 Tables without relations: {', '.join(insertion_plan.independent_tables)}")

        if not insertion_plan.is_consistent:
            click.echo("\n⚠️  ORDER VIOLATIONS:")
            for table, depends_on in insertion_plan.violations:
                click.echo(f"   {table} relates to {depends_on}, which is not seeded before it")
            click.echo("\n💡 SUGGESTED SEED ORDER:")
            click.echo(f"   {' → '.join(insertion_plan.suggested_order)}")
            sys.exit(1)
        if errors_by_table:
            sys.exit(1)
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
