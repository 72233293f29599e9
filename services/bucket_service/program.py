"""
Pulumi materialization of a ResourceGraph.

`inline_program(graph)` returns the zero-argument function Pulumi's automation
API runs as an inline program. Nodes are created in topological order; `Ref`
properties are replaced by the referenced resource's output, and explicit
depends_on edges become ResourceOptions(depends_on=...).
"""
from __future__ import annotations

import json
from typing import Any, Callable

import pulumi
import pulumi_aws as aws

from shared.errors import UnsupportedResourceError

from . import graph as g


def _bucket(node: g.ResourceNode, props: dict, opts: pulumi.ResourceOptions) -> pulumi.CustomResource:
    return aws.s3.Bucket(
        node.name,
        bucket=props["bucket"],
        website=aws.s3.BucketWebsiteArgs(**props["website"]),
        opts=opts,
    )


def _bucket_object(node: g.ResourceNode, props: dict, opts: pulumi.ResourceOptions) -> pulumi.CustomResource:
    return aws.s3.BucketObject(
        node.name,
        bucket=props["bucket"],
        key=props["key"],
        content=props["content"],
        content_type=props["content_type"],
        opts=opts,
    )


def _public_access_block(node: g.ResourceNode, props: dict, opts: pulumi.ResourceOptions) -> pulumi.CustomResource:
    return aws.s3.BucketPublicAccessBlock(
        node.name,
        bucket=props["bucket"],
        block_public_acls=props["block_public_acls"],
        opts=opts,
    )


def _bucket_policy(node: g.ResourceNode, props: dict, opts: pulumi.ResourceOptions) -> pulumi.CustomResource:
    return aws.s3.BucketPolicy(
        node.name,
        bucket=props["bucket"],
        policy=json.dumps(props["policy"]),
        opts=opts,
    )


BUILDERS: dict[str, Callable[..., pulumi.CustomResource]] = {
    g.BUCKET: _bucket,
    g.BUCKET_OBJECT: _bucket_object,
    g.PUBLIC_ACCESS_BLOCK: _public_access_block,
    g.BUCKET_POLICY: _bucket_policy,
}


def _resolve(value: Any, created: dict[str, pulumi.CustomResource]) -> Any:
    if isinstance(value, g.Ref):
        return getattr(created[value.node], value.attribute)
    if isinstance(value, dict):
        return {k: _resolve(v, created) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v, created) for v in value]
    return value


def materialize(graph: g.ResourceGraph) -> dict[str, pulumi.CustomResource]:
    """Register every node with the Pulumi engine. Returns resources by node key."""
    order = graph.topological_order()
    unsupported = sorted({n.type for n in order if n.type not in BUILDERS})
    if unsupported:
        raise UnsupportedResourceError(f"no builder for resource type(s): {', '.join(unsupported)}")

    created: dict[str, pulumi.CustomResource] = {}
    for node in order:
        opts = pulumi.ResourceOptions(depends_on=[created[k] for k in node.depends_on])
        created[node.key] = BUILDERS[node.type](node, _resolve(node.properties, created), opts)
    return created


def inline_program(graph: g.ResourceGraph) -> Callable[[], None]:
    def pulumi_program() -> None:
        created = materialize(graph)
        for name, ref in graph.outputs.items():
            pulumi.export(name, _resolve(ref, created))

    return pulumi_program
