#  SPDX-License-Identifier: MPL-2.0
#  Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Service autoscaling: replica bounds and target tracking triggers.

Evaluation of the triggers is done by Application Auto Scaling, only the thresholds are defined here.
"""

from __future__ import annotations

from troposphere import (
    AWS_ACCOUNT_ID,
    AWS_PARTITION,
    AWS_URL_SUFFIX,
    Ref,
    Sub,
    Template,
    applicationautoscaling,
)

from ecs_webstack.common import logical_name
from ecs_webstack.common.records import DescriptorRecord
from ecs_webstack.ecs.ecs_params import SERVICE_SCALING_TARGET
from ecs_webstack.exceptions import ValidationError

CPU_METRIC = "cpu"
MEMORY_METRIC = "memory"

TRACKING_SETTINGS = {
    CPU_METRIC: {
        "title": "Cpu",
        "property": "ECSServiceAverageCPUUtilization",
    },
    MEMORY_METRIC: {
        "title": "Memory",
        "property": "ECSServiceAverageMemoryUtilization",
    },
}


class ScalingTrigger(DescriptorRecord):
    fields = (
        "metric",
        "target_utilization_percent",
        "scale_in_cooldown",
        "scale_out_cooldown",
    )

    def __init__(
        self,
        metric: str,
        target_utilization_percent,
        scale_in_cooldown: int = 60,
        scale_out_cooldown: int = 60,
    ):
        if metric not in TRACKING_SETTINGS:
            raise ValidationError(
                f"Scaling metric {metric} is invalid. Must be one of",
                list(TRACKING_SETTINGS.keys()),
            )
        self.metric = metric
        self.target_utilization_percent = target_utilization_percent
        self.scale_in_cooldown = scale_in_cooldown
        self.scale_out_cooldown = scale_out_cooldown
        self.freeze()

    def validate(self) -> None:
        if not 0 < self.target_utilization_percent <= 100:
            raise ValidationError(
                f"Scaling {self.metric} target {self.target_utilization_percent} must be in ]0, 100]"
            )
        if self.scale_in_cooldown < 0 or self.scale_out_cooldown < 0:
            raise ValidationError(f"Scaling {self.metric} cooldowns must be positive")


class ScalingPolicy(DescriptorRecord):
    """
    Replica bounds of a service and the triggers that move the replica count within them.

    :ivar tuple[ScalingTrigger] triggers:
    """

    fields = ("min_capacity", "max_capacity", "triggers")

    def __init__(self, min_capacity: int, max_capacity: int, triggers):
        self.min_capacity = min_capacity
        self.max_capacity = max_capacity
        self.triggers = tuple(triggers)
        self.freeze()

    def validate(self, desired_count: int = None) -> None:
        """
        :param int desired_count: when set, must be within the bounds
        :raises ValidationError:
        """
        validate_scaling_bounds(self.min_capacity, self.max_capacity, desired_count)
        if not self.triggers:
            raise ValidationError("A scaling policy requires at least one trigger")
        metrics = [trigger.metric for trigger in self.triggers]
        if len(set(metrics)) != len(metrics):
            raise ValidationError(
                f"Only one scaling trigger per metric is allowed. Got {metrics}"
            )
        for trigger in self.triggers:
            trigger.validate()


def validate_scaling_bounds(
    min_capacity: int, max_capacity: int, desired_count: int = None
) -> None:
    """
    Checks 0 <= min_capacity <= desired_count <= max_capacity

    :raises ValidationError:
    """
    if min_capacity < 0:
        raise ValidationError(f"MinCapacity {min_capacity} cannot be negative")
    if min_capacity > max_capacity:
        raise ValidationError(
            f"MinCapacity {min_capacity} cannot be greater than MaxCapacity {max_capacity}"
        )
    if desired_count is not None and not (
        min_capacity <= desired_count <= max_capacity
    ):
        raise ValidationError(
            f"DesiredCount {desired_count} must be between MinCapacity {min_capacity}"
            f" and MaxCapacity {max_capacity}"
        )


def define_tracking_target_configuration(trigger: ScalingTrigger):
    """
    Function to create the configuration for target tracking scaling

    :param ScalingTrigger trigger:
    :rtype: troposphere.applicationautoscaling.TargetTrackingScalingPolicyConfiguration
    """
    specification = applicationautoscaling.PredefinedMetricSpecification(
        PredefinedMetricType=TRACKING_SETTINGS[trigger.metric]["property"]
    )
    return applicationautoscaling.TargetTrackingScalingPolicyConfiguration(
        DisableScaleIn=False,
        ScaleInCooldown=trigger.scale_in_cooldown,
        ScaleOutCooldown=trigger.scale_out_cooldown,
        TargetValue=float(trigger.target_utilization_percent),
        PredefinedMetricSpecification=specification,
    )


def render_service_scaling(
    template: Template, service_name: str, scaling: ScalingPolicy, cluster, ecs_service
) -> tuple:
    """
    Adds the ScalableTarget of the ECS Service and one TargetTrackingScaling policy per trigger

    :param troposphere.Template template:
    :param str service_name:
    :param ScalingPolicy scaling:
    :param troposphere.ecs.Cluster cluster:
    :param troposphere.ecs.Service ecs_service:
    :return: the scalable target and the list of scaling policies
    """
    title = logical_name(service_name)
    scalable_target = template.add_resource(
        applicationautoscaling.ScalableTarget(
            f"{title}{SERVICE_SCALING_TARGET}",
            MaxCapacity=scaling.max_capacity,
            MinCapacity=scaling.min_capacity,
            ScalableDimension="ecs:service:DesiredCount",
            ServiceNamespace="ecs",
            RoleARN=Sub(
                f"arn:${{{AWS_PARTITION}}}:iam::${{{AWS_ACCOUNT_ID}}}:role/"
                f"ecs.application-autoscaling.${{{AWS_URL_SUFFIX}}}/"
                "AWSServiceRoleForApplicationAutoScaling_ECSService"
            ),
            ResourceId=Sub(
                f"service/${{{cluster.title}}}/${{{ecs_service.title}.Name}}"
            ),
        )
    )
    policies = []
    for trigger in scaling.triggers:
        metric_title = TRACKING_SETTINGS[trigger.metric]["title"]
        policies.append(
            template.add_resource(
                applicationautoscaling.ScalingPolicy(
                    f"{title}{metric_title}TrackingPolicy",
                    ScalingTargetId=Ref(scalable_target),
                    PolicyName=f"{title}{metric_title}TrackingScalingPolicy",
                    PolicyType="TargetTrackingScaling",
                    TargetTrackingScalingPolicyConfiguration=define_tracking_target_configuration(
                        trigger
                    ),
                )
            )
        )
    return scalable_target, policies
