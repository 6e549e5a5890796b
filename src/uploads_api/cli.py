# cli.py
import click
import logging
from uploads_api.adapters import Adapters
from uploads_api.config.settings import get_settings

# Configure logging
logger = logging.getLogger(__name__)

@click.group()
def cli():
    """CLI commands for running and provisioning the Uploads API"""
    pass

@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  Deployment Mode: {settings.deployment_mode}")
    click.echo(f"  Listen Address: {settings.host}:{settings.port}")
    click.echo(f"  AWS Region: {settings.aws_region}")
    click.echo(f"  AWS Endpoint: {settings.aws_endpoint_url}")
    click.echo(f"  S3 Bucket: {settings.bucket_name}")
    click.echo(f"  S3 Object ACL: {settings.s3_object_acl}")
    click.echo(f"  Metadata Table: {settings.metadata_table_name}")
    if settings.deployment_mode == "local-dev":
        click.echo(f"  Metadata DB Path: {settings.metadata_db_path}")
        click.echo(f"  Event Spool Dir: {settings.event_spool_dir}")
    click.echo(f"  Event Topic: {settings.pubsub_topic_name}")
    click.echo(f"  Presigned URL Expiry: {settings.presigned_url_expiry_seconds}s")

@cli.command()
@click.option("--host", default=None, help="Interface to bind (defaults to HOST)")
@click.option("--port", default=None, type=int, help="Port to listen on (defaults to PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host, port, reload):
    """Run the API with uvicorn"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "uploads_api.main:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )

@cli.command()
def init_resources():
    """Create the bucket, metadata table and event topic"""
    settings = get_settings()
    adapters = Adapters.from_settings(settings)
    try:
        adapters.provision(settings)
        click.echo(f"✅ Bucket '{settings.bucket_name}' ready")
        click.echo(f"✅ Metadata collection '{settings.metadata_table_name}' ready")
        click.echo(f"✅ Event topic '{settings.pubsub_topic_name}' ready")
    except Exception as e:
        click.echo(f"❌ Provisioning failed: {e}", err=True)
        raise SystemExit(1)
    finally:
        adapters.close()

if __name__ == "__main__":
    cli()
