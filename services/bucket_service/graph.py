"""
Resource Graph Definition
=========================
The desired remote state for one website bucket, declared as plain data:

  bucket ──┬── index                (BucketObject, index.html)
           ├── public-access-block  (BucketPublicAccessBlock)
           └── bucketPolicy         (BucketPolicy, depends_on public-access-block)

  outputs: websiteUrl ← bucket.website_endpoint

Nothing here talks to Pulumi or AWS. The graph is handed to a provisioning
engine which materializes it (see program.py for the Pulumi version).
Keeping the declaration separate lets tests check ordering and content
without a Pulumi runtime.

Nodes are keyed by a logical key; `name` is the Pulumi resource name. The
bucket resource is named after the bucket itself, so a bucket called "index"
must not clash with the index object's key.

A `Ref` inside node properties points at an attribute of another node and
counts as an implicit dependency edge, exactly like passing `bucket.id` to a
Pulumi resource does.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from shared.models import ResourceSpec

BUCKET = "aws:s3/bucket:Bucket"
BUCKET_OBJECT = "aws:s3/bucketObject:BucketObject"
PUBLIC_ACCESS_BLOCK = "aws:s3/bucketPublicAccessBlock:BucketPublicAccessBlock"
BUCKET_POLICY = "aws:s3/bucketPolicy:BucketPolicy"

WEBSITE_URL_OUTPUT = "websiteUrl"
INDEX_DOCUMENT = "index.html"

_INDEX_TEMPLATE = """<html><head>
  <title>S3 Automation</title><meta charset="UTF-8">
 </head>
 <body><p>Hello, thanks for being part of this!</p><p>Made with ❤️ with <a href="https://pulumi.com">Pulumi</a></p><p>Your custom message is = {message} </p>
 </body></html>
"""


class GraphError(ValueError):
    """The graph cannot be ordered: a cycle or an edge to an unknown node."""


@dataclass(frozen=True)
class Ref:
    """Reference to `attribute` of another node in the same graph."""
    node: str
    attribute: str = "id"


@dataclass(frozen=True)
class ResourceNode:
    key: str
    type: str
    name: str
    properties: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()

    def references(self) -> set[str]:
        return {v.node for v in _walk(self.properties) if isinstance(v, Ref)}

    def dependencies(self) -> set[str]:
        """Explicit depends_on edges plus every node referenced by a property."""
        return set(self.depends_on) | self.references()


@dataclass
class ResourceGraph:
    nodes: dict[str, ResourceNode] = field(default_factory=dict)
    outputs: dict[str, Ref] = field(default_factory=dict)

    def add(self, node: ResourceNode) -> ResourceNode:
        if node.key in self.nodes:
            raise GraphError(f"duplicate resource key: {node.key}")
        self.nodes[node.key] = node
        return node

    def export(self, name: str, ref: Ref) -> None:
        self.outputs[name] = ref

    def topological_order(self) -> list[ResourceNode]:
        """
        Nodes ordered so every dependency comes first. Ties keep declaration
        order, so the result is deterministic.
        """
        for node in self.nodes.values():
            missing = node.dependencies() - self.nodes.keys()
            if missing:
                raise GraphError(f"{node.key} depends on undeclared resource(s): {sorted(missing)}")
        for name, ref in self.outputs.items():
            if ref.node not in self.nodes:
                raise GraphError(f"output {name} refers to undeclared resource: {ref.node}")

        ordered: list[ResourceNode] = []
        placed: set[str] = set()
        pending = list(self.nodes.values())
        while pending:
            ready = [n for n in pending if n.dependencies() <= placed]
            if not ready:
                raise GraphError(f"dependency cycle between: {sorted(n.key for n in pending)}")
            for node in ready:
                ordered.append(node)
                placed.add(node.key)
            pending = [n for n in pending if n.key not in placed]
        return ordered


def _walk(value: Any):
    if isinstance(value, dict):
        for v in value.values():
            yield from _walk(v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            yield from _walk(v)
    else:
        yield value


def render_index_html(custom_message: str) -> str:
    """The index page. The message is embedded verbatim."""
    return _INDEX_TEMPLATE.format(message=custom_message)


def public_read_policy(bucket_name: str) -> dict:
    return {
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": "*",
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket_name}/*"],
            }
        ],
    }


def define_bucket_site(spec: ResourceSpec) -> ResourceGraph:
    graph = ResourceGraph()
    graph.add(ResourceNode(
        key="bucket",
        type=BUCKET,
        name=spec.bucket_name,
        properties={
            "bucket": spec.bucket_name,
            "website": {"index_document": INDEX_DOCUMENT},
        },
    ))
    graph.add(ResourceNode(
        key="index",
        type=BUCKET_OBJECT,
        name="index",
        properties={
            "bucket": Ref("bucket"),
            "key": INDEX_DOCUMENT,
            "content": render_index_html(spec.custom_message),
            "content_type": "text/html; charset=utf-8",
        },
    ))
    graph.add(ResourceNode(
        key="public-access-block",
        type=PUBLIC_ACCESS_BLOCK,
        name="public-access-block",
        properties={
            "bucket": Ref("bucket"),
            "block_public_acls": False,
        },
    ))
    graph.add(ResourceNode(
        key="bucketPolicy",
        type=BUCKET_POLICY,
        name="bucketPolicy",
        properties={
            "bucket": Ref("bucket"),
            # bucket id == bucket name, the policy names it explicitly
            "policy": public_read_policy(spec.bucket_name),
        },
        depends_on=("public-access-block",),
    ))
    graph.export(WEBSITE_URL_OUTPUT, Ref("bucket", "website_endpoint"))
    return graph
