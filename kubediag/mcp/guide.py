"""Troubleshooting guide served as an MCP resource."""

from __future__ import annotations

GUIDE_URI = "k8s://diagnostics/guide"
GUIDE_NAME = "Kubernetes diagnostics guide"
GUIDE_MIME_TYPE = "text/markdown"

GUIDE_TEXT = """\
# kubediag Troubleshooting Guide

kubediag reads cluster state and reports what looks wrong with pods,
workloads and the cluster as a whole.  Every tool returns the same JSON
payload as the matching REST route (`POST /<tool name>`).

## Tools

### diagnose_pod
Detailed analysis of one pod:
- Container readiness, waiting reasons and restart counts
- Missing resource requests and limits
- Events from the last 24 hours
- Suggested next steps

Arguments: `namespace` (default `default`), `pod_name`.

### analyze_cluster_health
Cluster-wide overview:
- Node readiness
- Namespace and pod counts
- Problem pods outside system namespaces
- Recommendations when nodes are down or many pods are unhealthy

### analyze_pod_logs
Classifies the tail of a pod's logs:
- Error patterns (timeouts, refused connections, OOM, panics)
- Warning lines
- Suggestions per detected pattern

Arguments: `namespace`, `pod_name`, `container`, `lines` (default 100).

### list_pods
Pods with status, ready containers, restart total and age.  Pass
`namespace="all"` for every non-system namespace, or `show_system=true`
to include system namespaces across the whole cluster.

### find_problematic_pods
Finds and diagnoses pods matching a criterion: `failing`, `restarting`,
`not-ready`, `resource-issues`, `image-issues` or `all`.

### search_pods
Case-insensitive search over pod name, namespace and labels, with a
diagnosis for every match.

### get_resource_usage
CPU and memory requests and limits per pod, with restart counts and
resource warnings.  Sort by `restarts`, `cpu`, `memory` or `name`.

### quick_triage
One call that combines cluster health, failing pods, pods with high
restart counts and a list of immediate actions.

### get_workload_recommendations
Audits deployments for resource settings, replica count and health
probes.

## Common Troubleshooting Patterns

### Pod keeps restarting
1. Run `diagnose_pod` on the pod
2. Run `analyze_pod_logs` to find the error pattern
3. Check resource limits (OOM kills show up as restarts)
4. Review the recent events in the diagnosis

### Cluster feels degraded
1. Start with `quick_triage` or `analyze_cluster_health`
2. Use `find_problematic_pods` with `criteria="failing"`
3. Use `get_workload_recommendations` on the affected namespaces

### Image cannot be pulled
1. Use `find_problematic_pods` with `criteria="image-issues"`
2. Verify the image name, tag and registry credentials

## Best Practices

- Start with cluster health before drilling into single pods
- Combine log analysis with the pod diagnosis
- Set resource requests and limits on every container
- Run more than one replica for workloads that must stay available
- Configure liveness and readiness probes
"""
