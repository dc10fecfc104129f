# Copyright 2026, Pulumi Corporation.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Iterator, List, NamedTuple, Sequence, Tuple

from . import _aws_args
from ._cmd import AwsCommand

# describe-services accepts at most 10 services per call.
DESCRIBE_BATCH_SIZE = 10

_COLUMNS = (("CLUSTER", 20), ("SERVICE", 30), ("CONTAINER", 25), ("IMAGE", 50))


class ContainerImage(NamedTuple):
    cluster: str
    service: str
    container: str
    image: str
    tag: str


def split_image(image: str) -> Tuple[str, str]:
    """
    Splits ``repository:tag`` on the last colon. Images without a tag are ``latest``.
    """
    if ":" not in image:
        return image, "latest"
    name, _, tag = image.rpartition(":")
    return name, tag or "latest"


def _batches(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def list_images(aws: AwsCommand) -> List[ContainerImage]:
    """
    Lists the image of every container of every service in every ECS cluster.

    :raises ExternalCommandFailure: if an AWS CLI call fails.
    """
    images: List[ContainerImage] = []
    clusters = aws.run_json(_aws_args.list_clusters()).get("clusterArns") or []
    for cluster_arn in clusters:
        cluster = cluster_arn.split("/")[-1]
        services = aws.run_json(_aws_args.list_services(cluster_arn)).get("serviceArns") or []
        for batch in _batches(services, DESCRIBE_BATCH_SIZE):
            details = aws.run_json(_aws_args.describe_services(cluster_arn, batch))
            for service in details.get("services") or []:
                task_definition = service.get("taskDefinition")
                if not task_definition:
                    continue
                task = aws.run_json(_aws_args.describe_task_definition(task_definition))
                containers = (task.get("taskDefinition") or {}).get("containerDefinitions") or []
                for container in containers:
                    image, tag = split_image(container.get("image") or "")
                    images.append(
                        ContainerImage(
                            cluster,
                            service.get("serviceName", ""),
                            container.get("name", ""),
                            image,
                            tag,
                        )
                    )
    return images


def format_table(images: Sequence[ContainerImage]) -> str:
    header = "".join(title.ljust(width) for title, width in _COLUMNS) + "TAG"
    lines = [header, "-" * 130]
    for row in images:
        cells = (row.cluster, row.service, row.container, row.image)
        lines.append(
            "".join(cell.ljust(width) for cell, (_, width) in zip(cells, _COLUMNS))
            + ":"
            + row.tag
        )
    return "\n".join(lines)
