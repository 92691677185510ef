"""Bootstrap commands for deploying the sample app.

This module provides `kubelaunch up` and the operator commands around it:
down, status, forward and manifests.
"""

from __future__ import annotations

import json
import signal
import sys
from pathlib import Path
from typing import Any

import click

from ..bootstrap import (
    CONTROLLER_SELECTOR,
    INGRESS_NAMESPACE,
    AppConfig,
    BootstrapPipeline,
    KindCluster,
    KubeContext,
    Kubectl,
    ManifestApplier,
    ManifestGenerator,
    PortForwardSession,
    PrerequisiteChecker,
    ReadinessWaiter,
    TunnelProbe,
    all_ready,
)
from ..config import TARGET_KIND, TARGETS, BootstrapConfig, load_config
from ..errors import KubelaunchError
from ..formatters import print_error, print_pod_table, print_step


def _load(ctx: click.Context, **overrides: Any) -> BootstrapConfig:
    config_path = ctx.obj.get("config_path")
    return load_config(Path(config_path) if config_path else None, overrides)


def _fail(ctx: click.Context, error: KubelaunchError) -> None:
    print_error(error, ctx.obj.get("json_output", False))
    sys.exit(error.exit_code)


def _kubectl(config: BootstrapConfig) -> Kubectl:
    return Kubectl(KubeContext(config.kubeconfig, config.kube_context))


def hold_forward(session: PortForwardSession, probe: bool = True) -> int:
    """Keep a started port-forward in the foreground until interrupted.

    SIGINT and SIGTERM stop the session; both count as a clean exit.

    Returns:
        0 once the session was stopped.

    Raises:
        PortForwardError: The tunnel dropped on its own.
    """
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: session.stop())
    try:
        if probe:
            result = TunnelProbe().wait_until_reachable_sync(session.url)
            if result.reachable:
                click.echo(f"  ✓ {session.url} responded (HTTP {result.status_code})")
            else:
                click.echo(f"  ⚠ {result.error}")

        click.echo(f"\nForwarding {session.url} -> {session.target}:{session.remote_port}")
        click.echo("Press Ctrl+C to stop.")
        return session.wait()
    except KeyboardInterrupt:
        session.stop()
        click.echo("\n✓ Port-forward stopped.")
        return 0
    finally:
        signal.signal(signal.SIGTERM, previous)


@click.command()
@click.option("--target", type=click.Choice(TARGETS), default=None, help="Deployment target")
@click.option("--cluster", "cluster_name", default=None, help="kind cluster name")
@click.option("--kubeconfig", default=None, help="Kubeconfig path")
@click.option("--context", default=None, help="Kube context")
@click.option("--namespace", "-n", default=None, help="Namespace of the app")
@click.option("--manifests", "manifest_dir", default=None, help="Manifest directory")
@click.option("--selector", "-l", default=None, help="Label selector of the app's pods")
@click.option("--service", default=None, help="Service to forward to")
@click.option("--local-port", type=int, default=None, help="Local port")
@click.option("--remote-port", type=int, default=None, help="Service port")
@click.option(
    "--timeout", "readiness_timeout", type=float, default=None, help="Readiness timeout (s)"
)
@click.option("--no-forward", is_flag=True, help="Stop after pods are ready")
@click.option("--no-probe", is_flag=True, help="Skip the HTTP check through the tunnel")
@click.pass_context
def up(
    ctx: click.Context,
    target: str | None,
    cluster_name: str | None,
    kubeconfig: str | None,
    context: str | None,
    namespace: str | None,
    manifest_dir: str | None,
    selector: str | None,
    service: str | None,
    local_port: int | None,
    remote_port: int | None,
    readiness_timeout: float | None,
    no_forward: bool,
    no_probe: bool,
) -> None:
    """Bring the sample app up on Kubernetes.

    Creates the cluster if missing, installs the ingress controller if
    missing, applies the manifest directory, waits for the app's pods and
    forwards a local port to its service.

    Examples:

        # Local kind cluster, ./k8s, app=sample, localhost:8080 -> svc/sample:80
        kubelaunch up

        # Existing managed cluster
        kubelaunch up --target cloud --context my-gke-context
    """
    try:
        config = _load(
            ctx,
            target=target,
            cluster_name=cluster_name,
            kubeconfig=kubeconfig,
            context=context,
            namespace=namespace,
            manifest_dir=manifest_dir,
            selector=selector,
            service=service,
            local_port=local_port,
            remote_port=remote_port,
            readiness_timeout=readiness_timeout,
        )

        click.echo("\n🚀 kubelaunch up\n")
        click.echo("📋 Prerequisites\n")
        for tool in PrerequisiteChecker().check(config.target):
            click.echo(f"  ✓ {tool.name}: {tool.version or 'available'}")

        click.echo("\n📋 Bootstrap\n")
        pipeline = BootstrapPipeline.from_config(config, on_step=print_step)
        result = pipeline.run(forward=not no_forward)
    except KubelaunchError as e:
        _fail(ctx, e)
        return

    if result.session is None:
        click.echo("\n✓ App is up. Forward with: kubelaunch forward")
        return

    try:
        hold_forward(result.session, probe=not no_probe)
    except KubelaunchError as e:
        _fail(ctx, e)


@click.command()
@click.option("--target", type=click.Choice(TARGETS), default=None, help="Deployment target")
@click.option("--cluster", "cluster_name", default=None, help="kind cluster name")
@click.option("--manifests", "manifest_dir", default=None, help="Manifest directory (cloud)")
@click.pass_context
def down(
    ctx: click.Context,
    target: str | None,
    cluster_name: str | None,
    manifest_dir: str | None,
) -> None:
    """Tear down what `up` created.

    Deletes the kind cluster, or for the cloud target, the resources in the
    manifest directory.
    """
    try:
        config = _load(ctx, target=target, cluster_name=cluster_name, manifest_dir=manifest_dir)
        if config.target == TARGET_KIND:
            if KindCluster(config.cluster_name).delete():
                click.echo(f"✓ Cluster '{config.cluster_name}' deleted.")
            else:
                click.echo(f"No cluster named '{config.cluster_name}'.")
        else:
            deleted = ManifestApplier(_kubectl(config)).delete(Path(config.manifest_dir))
            click.echo(f"✓ Deleted resources from {len(deleted)} manifest(s).")
    except KubelaunchError as e:
        _fail(ctx, e)


@click.command()
@click.option("--target", type=click.Choice(TARGETS), default=None, help="Deployment target")
@click.option("--cluster", "cluster_name", default=None, help="kind cluster name")
@click.option("--kubeconfig", default=None, help="Kubeconfig path")
@click.option("--context", default=None, help="Kube context")
@click.option("--namespace", "-n", default=None, help="Namespace of the app")
@click.option("--selector", "-l", default=None, help="Label selector of the app's pods")
@click.pass_context
def status(
    ctx: click.Context,
    target: str | None,
    cluster_name: str | None,
    kubeconfig: str | None,
    context: str | None,
    namespace: str | None,
    selector: str | None,
) -> None:
    """Show cluster, ingress controller and pod status."""
    try:
        config = _load(
            ctx,
            target=target,
            cluster_name=cluster_name,
            kubeconfig=kubeconfig,
            context=context,
            namespace=namespace,
            selector=selector,
        )
        if config.target == TARGET_KIND and not KindCluster(config.cluster_name).exists():
            click.echo(f"No cluster named '{config.cluster_name}'. Run: kubelaunch up")
            return

        kubectl = _kubectl(config)
        waiter = ReadinessWaiter(kubectl)
        ingress_installed = kubectl.namespace_exists(INGRESS_NAMESPACE)
        ingress_ready = ingress_installed and all_ready(
            waiter.check(INGRESS_NAMESPACE, CONTROLLER_SELECTOR)
        )
        pods = waiter.check(config.namespace, config.selector)
    except KubelaunchError as e:
        _fail(ctx, e)
        return

    if ctx.obj.get("json_output"):
        click.echo(
            json.dumps(
                {
                    "cluster": config.kube_context,
                    "ingress_installed": ingress_installed,
                    "ingress_ready": ingress_ready,
                    "pods": [{"name": p.name, "phase": p.phase, "ready": p.ready} for p in pods],
                },
                indent=2,
            )
        )
        return

    click.echo(f"Cluster: {config.kube_context or 'current-context'}")
    if ingress_installed:
        click.echo(f"Ingress controller: {'ready' if ingress_ready else 'not ready'}")
    else:
        click.echo("Ingress controller: not installed")
    click.echo(f"Pods ({config.selector} in {config.namespace}):")
    print_pod_table(pods)


@click.command()
@click.option("--target", type=click.Choice(TARGETS), default=None, help="Deployment target")
@click.option("--namespace", "-n", default=None, help="Namespace of the service")
@click.option("--service", default=None, help="Service to forward to")
@click.option("--local-port", type=int, default=None, help="Local port")
@click.option("--remote-port", type=int, default=None, help="Service port")
@click.option("--kubeconfig", default=None, help="Kubeconfig path")
@click.option("--context", default=None, help="Kube context")
@click.option("--no-probe", is_flag=True, help="Skip the HTTP check through the tunnel")
@click.pass_context
def forward(
    ctx: click.Context,
    target: str | None,
    namespace: str | None,
    service: str | None,
    local_port: int | None,
    remote_port: int | None,
    kubeconfig: str | None,
    context: str | None,
    no_probe: bool,
) -> None:
    """Forward a local port to the app's service, in the foreground."""
    try:
        config = _load(
            ctx,
            target=target,
            namespace=namespace,
            service=service,
            local_port=local_port,
            remote_port=remote_port,
            kubeconfig=kubeconfig,
            context=context,
        )
        session = PortForwardSession(
            _kubectl(config),
            config.namespace,
            f"svc/{config.service}",
            config.local_port,
            config.remote_port,
            config.address,
        ).start()
        hold_forward(session, probe=not no_probe)
    except KubelaunchError as e:
        _fail(ctx, e)


@click.command()
@click.argument("output_dir", required=False, type=click.Path(file_okay=False))
@click.option("--name", default="sample", help="App name (also the app= label)")
@click.option("--image", default=None, help="Container image")
@click.option("--namespace", "-n", default="default", help="Namespace")
@click.option("--replicas", default=1, type=int, help="Replica count")
@click.option("--port", "container_port", default=80, type=int, help="Container port")
@click.option("--host", "ingress_host", default=None, help="Ingress host rule")
@click.pass_context
def manifests(
    ctx: click.Context,
    output_dir: str | None,
    name: str,
    image: str | None,
    namespace: str,
    replicas: int,
    container_port: int,
    ingress_host: str | None,
) -> None:
    """Generate Deployment, Service and Ingress manifests for the app."""
    try:
        config = _load(ctx)
    except KubelaunchError as e:
        _fail(ctx, e)
        return

    app_config = AppConfig(
        name=name,
        namespace=namespace,
        replicas=replicas,
        container_port=container_port,
        service_port=config.remote_port,
        ingress_host=ingress_host,
    )
    if image:
        app_config.image = image

    target_dir = Path(output_dir or config.manifest_dir)
    for path in ManifestGenerator().generate(app_config, target_dir):
        click.echo(f"  ✓ Generated: {path}")
    click.echo(f"\nPods are labelled {app_config.selector}")


@click.command()
@click.option("--host", default="0.0.0.0", help="Bind host")
@click.option("--port", default=8080, type=int, help="Bind port")
@click.option("--name", default=None, help="Service name reported by the app")
def serve(host: str, port: int, name: str | None) -> None:
    """Run the sample web service."""
    import uvicorn

    from ..webapp import create_app

    click.echo(f"Serving on http://{host}:{port}", err=True)
    uvicorn.run(create_app(name), host=host, port=port, log_level="info")


