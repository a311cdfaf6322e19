"""kubediag command-line interface.

Commands:
    kubediag version                                  Print version and exit.
    kubediag serve                                    Run the server in this process.
    kubediag diagnose <pod> [-n NS]                   Diagnose one pod.
    kubediag health                                   Cluster health summary.
    kubediag logs <pod> [-n NS] [-c C] [--lines N]    Classify a pod's log tail.
    kubediag pods [-n NS] [--show-system]             List pods.
    kubediag problems [-n NS] [--criteria C]          Find problematic pods.
    kubediag search <pattern> [-n NS]                 Search pods.
    kubediag resources [-n NS] [--sort-by KEY]        Resource requests/limits.
    kubediag triage                                   Quick triage bundle.
    kubediag recommend [-n NS]                        Deployment audit.

Every command except ``version`` and ``serve`` calls the REST API at
http://localhost:8080 (configurable via ``--api-url``).  ``--json`` prints
the raw response instead of the coloured summary.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

import click
import httpx

from kubediag import __version__

_DEFAULT_API_URL = "http://localhost:8080"

_F = TypeVar("_F", bound=Callable[..., Any])

# ---------------------------------------------------------------------------
# Colour helpers
# ---------------------------------------------------------------------------

_PHASE_COLORS: dict[str, str] = {
    "Running": "green",
    "Succeeded": "green",
    "Pending": "yellow",
    "Unknown": "yellow",
    "Failed": "red",
}


def _styled_phase(phase: str) -> str:
    return click.style(phase, fg=_PHASE_COLORS.get(phase, "white"))


def _heading(text: str, **style: Any) -> None:
    click.echo(click.style(text, bold=True, **style))


# ---------------------------------------------------------------------------
# HTTP helpers
# ---------------------------------------------------------------------------


def _post(api_url: str, path: str, body: dict[str, object] | None = None) -> Any:
    """Perform a POST request and return the parsed JSON body.

    Raises click.ClickException on connection errors or non-2xx responses.
    """
    url = api_url.rstrip("/") + path
    try:
        with httpx.Client(timeout=60.0) as client:
            response = client.post(url, json=body or {})
        response.raise_for_status()
        return response.json()
    except httpx.ConnectError as err:
        raise click.ClickException(f"Cannot connect to kubediag API at {api_url}. Is the server running?") from err
    except httpx.HTTPStatusError as exc:
        _handle_error_response(exc.response)
        raise  # unreachable, _handle_error_response always raises


def _handle_error_response(response: httpx.Response) -> None:
    """Parse an error response body and raise a friendly ClickException."""
    try:
        data: dict[str, object] = response.json()
        error_code = str(data.get("error", "ERROR"))
        detail = str(data.get("detail", "Unknown error"))
        msg = f"{error_code}: {detail}"
    except Exception:  # noqa: BLE001
        msg = f"HTTP {response.status_code}: {response.text[:200]}"
    raise click.ClickException(msg)


def _json_option(func: _F) -> _F:
    return click.option(
        "--json",
        "output_json",
        is_flag=True,
        default=False,
        help="Print raw JSON response.",
    )(func)


def _emit(data: Any, output_json: bool, printer: Callable[[Any], None]) -> None:
    if output_json:
        click.echo(json.dumps(data, indent=2))
    else:
        printer(data)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--api-url",
    default=_DEFAULT_API_URL,
    envvar="KUBEDIAG_API_URL",
    show_default=True,
    help="kubediag REST API base URL.",
)
@click.pass_context
def cli(ctx: click.Context, api_url: str) -> None:
    """kubediag: Kubernetes pod and cluster diagnostics CLI."""
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url


@cli.command("version")
def cmd_version() -> None:
    """Print the kubediag version and exit."""
    click.echo(f"kubediag {__version__}")


@cli.command("serve")
def cmd_serve() -> None:
    """Run the kubediag server (REST or MCP, per KUBEDIAG_MODE)."""
    from kubediag.app import run

    run()


# ---------------------------------------------------------------------------
# Pod diagnosis
# ---------------------------------------------------------------------------


@cli.command("diagnose")
@click.argument("pod_name")
@click.option("--namespace", "-n", default="default", show_default=True, metavar="NS")
@_json_option
@click.pass_context
def cmd_diagnose(ctx: click.Context, pod_name: str, namespace: str, output_json: bool) -> None:
    """Diagnose POD_NAME: restarts, readiness, waiting reasons, resources, events."""
    data = _post(ctx.obj["api_url"], "/diagnose_pod", {"namespace": namespace, "pod_name": pod_name})
    _emit(data, output_json, _print_diagnostic)


def _print_diagnostic(data: dict[str, Any]) -> None:
    name = f"{data.get('namespace', '?')}/{data.get('name', '?')}"
    click.echo(
        click.style(name, bold=True)
        + "  "
        + _styled_phase(str(data.get("status", "?")))
        + f"  restarts={data.get('restart_count', 0)}"
    )

    issues: list[str] = data.get("issues", [])
    if issues:
        for issue in issues:
            click.echo(click.style(f"  ! {issue}", fg="red"))
    else:
        click.echo(click.style("  No issues found.", fg="green"))

    for suggestion in data.get("suggestions", []):
        click.echo(click.style(f"  > {suggestion}", fg="cyan"))

    resources: dict[str, str] = data.get("resources", {})
    if resources:
        click.echo("  resources: " + ", ".join(f"{k}={v}" for k, v in sorted(resources.items())))

    events: list[str] = data.get("recent_events", [])
    if events:
        click.echo("  recent events:")
        for event in events:
            click.echo(f"    {event}")


def _print_diagnostics(pods: list[dict[str, Any]], skipped: int) -> None:
    for pod in pods:
        _print_diagnostic(pod)
        click.echo("")
    if skipped:
        click.echo(click.style(f"{skipped} pod(s) could not be diagnosed and were skipped.", fg="yellow"))


# ---------------------------------------------------------------------------
# Cluster health
# ---------------------------------------------------------------------------


@cli.command("health")
@_json_option
@click.pass_context
def cmd_health(ctx: click.Context, output_json: bool) -> None:
    """Summarize node readiness, problem pods and recommendations."""
    data = _post(ctx.obj["api_url"], "/analyze_cluster_health")
    _emit(data, output_json, _print_health)


def _print_health(data: dict[str, Any]) -> None:
    nodes = int(data.get("node_count", 0))
    healthy = int(data.get("healthy_nodes", 0))
    node_color = "green" if healthy == nodes else "yellow"
    usage: dict[str, Any] = data.get("resource_usage", {})

    _heading("Cluster Health")
    click.echo(f"  Nodes:       {click.style(f'{healthy}/{nodes} ready', fg=node_color)}")
    click.echo(f"  Namespaces:  {data.get('namespace_count', 0)}")
    click.echo(
        f"  Pods:        {usage.get('problem_pods', 0)}/{usage.get('total_pods', 0)} with issues "
        f"({float(usage.get('problem_percentage', 0.0)):.1f}%)"
    )
    if usage.get("skipped_pods"):
        click.echo(click.style(f"  Skipped:     {usage['skipped_pods']}", fg="yellow"))

    recommendations: list[str] = data.get("recommendations", [])
    if recommendations:
        click.echo("")
        _heading("Recommendations:", fg="yellow")
        for rec in recommendations:
            click.echo(f"  - {rec}")

    pod_issues: list[dict[str, Any]] = data.get("pod_issues", [])
    if pod_issues:
        click.echo("")
        _heading(f"Problem Pods ({len(pod_issues)}):", fg="red")
        for pod in pod_issues:
            click.echo(f"  {pod.get('namespace')}/{pod.get('name')}  {'; '.join(pod.get('issues', []))}")


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


@cli.command("logs")
@click.argument("pod_name")
@click.option("--namespace", "-n", default="default", show_default=True, metavar="NS")
@click.option("--container", "-c", default="", metavar="NAME", help="Container name.")
@click.option("--lines", default=100, show_default=True, type=int, help="Trailing lines to analyze.")
@_json_option
@click.pass_context
def cmd_logs(
    ctx: click.Context,
    pod_name: str,
    namespace: str,
    container: str,
    lines: int,
    output_json: bool,
) -> None:
    """Classify the recent log lines of POD_NAME."""
    body: dict[str, object] = {"namespace": namespace, "pod_name": pod_name, "container": container, "lines": lines}
    data = _post(ctx.obj["api_url"], "/analyze_pod_logs", body)
    _emit(data, output_json, _print_logs)


def _print_logs(data: dict[str, Any]) -> None:
    _heading(f"Log Analysis {data.get('namespace')}/{data.get('pod_name')}")
    click.echo(
        f"  lines={data.get('log_lines', 0)}  "
        f"errors={click.style(str(data.get('error_count', 0)), fg='red')}  "
        f"warnings={click.style(str(data.get('warning_count', 0)), fg='yellow')}"
    )
    for line in data.get("errors_found", []):
        click.echo(f"  {line[:160]}")
    for suggestion in data.get("suggestions", []):
        click.echo(click.style(f"  > {suggestion}", fg="cyan"))


# ---------------------------------------------------------------------------
# Pod listing and queries
# ---------------------------------------------------------------------------


@cli.command("pods")
@click.option("--namespace", "-n", default="default", show_default=True, metavar="NS", help="Namespace or 'all'.")
@click.option("--show-system", is_flag=True, default=False, help="List every namespace, system ones included.")
@_json_option
@click.pass_context
def cmd_pods(ctx: click.Context, namespace: str, show_system: bool, output_json: bool) -> None:
    """List pods with ready containers, restarts and age."""
    data = _post(ctx.obj["api_url"], "/list_pods", {"namespace": namespace, "show_system": show_system})
    _emit(data, output_json, _print_pods)


def _print_pods(data: dict[str, Any]) -> None:
    pods: list[dict[str, Any]] = data.get("pods", [])
    _heading(f"Pods ({data.get('pod_count', len(pods))}):")
    for pod in pods:
        phase = str(pod.get("status", "?"))
        padding = max(0, 10 - len(phase)) * " "
        click.echo(
            f"  {pod.get('namespace')}/{pod.get('name')}  {_styled_phase(phase)}{padding} "
            f"ready={pod.get('ready')}  restarts={pod.get('restarts')}  age={pod.get('age')}"
        )


@cli.command("problems")
@click.option("--namespace", "-n", default="", metavar="NS", help="Namespace, 'all', or empty for non-system.")
@click.option(
    "--criteria",
    default="all",
    show_default=True,
    help="failing, restarting, not-ready, resource-issues, image-issues or all.",
)
@_json_option
@click.pass_context
def cmd_problems(ctx: click.Context, namespace: str, criteria: str, output_json: bool) -> None:
    """Find and diagnose pods matching a problem criterion."""
    data = _post(ctx.obj["api_url"], "/find_problematic_pods", {"namespace": namespace, "criteria": criteria})

    def _print(d: dict[str, Any]) -> None:
        _heading(f"Problematic pods ({d.get('problem_count', 0)}, criteria={d.get('search_criteria')}):")
        _print_diagnostics(d.get("problematic_pods", []), int(d.get("skipped_count", 0)))

    _emit(data, output_json, _print)


@cli.command("search")
@click.argument("pattern")
@click.option("--namespace", "-n", default="", metavar="NS", help="Namespace, 'all', or empty for non-system.")
@_json_option
@click.pass_context
def cmd_search(ctx: click.Context, pattern: str, namespace: str, output_json: bool) -> None:
    """Search pods whose name, namespace or labels contain PATTERN."""
    data = _post(ctx.obj["api_url"], "/search_pods", {"pattern": pattern, "namespace": namespace})

    def _print(d: dict[str, Any]) -> None:
        _heading(f"Matches for {d.get('search_pattern')!r} ({d.get('matches_found', 0)}):")
        _print_diagnostics(d.get("matching_pods", []), int(d.get("skipped_count", 0)))

    _emit(data, output_json, _print)


@cli.command("resources")
@click.option("--namespace", "-n", default="", metavar="NS", help="Namespace, 'all', or empty for non-system.")
@click.option(
    "--sort-by",
    default="restarts",
    show_default=True,
    type=click.Choice(["restarts", "cpu", "memory", "name"]),
)
@_json_option
@click.pass_context
def cmd_resources(ctx: click.Context, namespace: str, sort_by: str, output_json: bool) -> None:
    """Show CPU/memory requests and limits per pod."""
    data = _post(ctx.obj["api_url"], "/get_resource_usage", {"namespace": namespace, "sort_by": sort_by})
    _emit(data, output_json, _print_resources)


def _print_resources(data: dict[str, Any]) -> None:
    items: list[dict[str, Any]] = data.get("resource_usage", [])
    _heading(f"Resource usage ({data.get('pod_count', len(items))} pods, sorted by {data.get('sort_by')}):")
    for item in items:
        flag = click.style(" !", fg="red", bold=True) if item.get("has_resource_issues") else ""
        click.echo(
            f"  {item.get('namespace')}/{item.get('name')}{flag}  "
            f"cpu={item.get('cpu_request') or '-'}/{item.get('cpu_limit') or '-'}  "
            f"mem={item.get('memory_request') or '-'}/{item.get('memory_limit') or '-'}  "
            f"restarts={item.get('restart_count', 0)}"
        )


# ---------------------------------------------------------------------------
# Triage and recommendations
# ---------------------------------------------------------------------------


@cli.command("triage")
@_json_option
@click.pass_context
def cmd_triage(ctx: click.Context, output_json: bool) -> None:
    """Cluster health plus failing and restarting pods in one call."""
    data = _post(ctx.obj["api_url"], "/quick_triage")
    _emit(data, output_json, _print_triage)


def _print_triage(data: dict[str, Any]) -> None:
    _print_health(data.get("cluster_health", {}))
    click.echo("")
    critical: list[dict[str, Any]] = data.get("critical_pods", [])
    restarting: list[dict[str, Any]] = data.get("restarting_pods", [])
    _heading(f"Critical pods ({len(critical)}):", fg="red")
    for pod in critical:
        click.echo(f"  {pod.get('namespace')}/{pod.get('name')}  {pod.get('status')}")
    _heading(f"Restarting pods ({len(restarting)}):", fg="yellow")
    for pod in restarting:
        click.echo(f"  {pod.get('namespace')}/{pod.get('name')}  restarts={pod.get('restart_count')}")
    click.echo("")
    _heading("Immediate actions:")
    for i, action in enumerate(data.get("immediate_actions", []), start=1):
        click.echo(f"  {i}. {action}")


@cli.command("recommend")
@click.option("--namespace", "-n", default="default", show_default=True, metavar="NS", help="Namespace or 'all'.")
@_json_option
@click.pass_context
def cmd_recommend(ctx: click.Context, namespace: str, output_json: bool) -> None:
    """Audit deployments for resources, replicas and probes."""
    data = _post(ctx.obj["api_url"], "/get_workload_recommendations", {"namespace": namespace})

    def _print(recs: list[str]) -> None:
        if not recs:
            click.echo(click.style("No recommendations.", fg="green"))
            return
        _heading(f"Recommendations ({len(recs)}):")
        for rec in recs:
            click.echo(f"  - {rec}")

    _emit(data, output_json, _print)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
