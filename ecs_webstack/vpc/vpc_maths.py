# SPDX-License-Identifier: MPL-2.0
# Copyright 2020-2022 John Mille <john@compose-x.io>

"""
Subnets CIDR calculator. Allocates the subnets blocks sequentially in the VPC CIDR, one layer after the other,
each layer having one subnet per AZ.
"""

import ipaddress

from ecs_webstack.exceptions import ValidationError


def next_aligned_network(address, prefixlen):
    """
    Returns the first network of the given prefix length starting at or after address.

    :param ipaddress.IPv4Address address:
    :param int prefixlen:
    :rtype: ipaddress.IPv4Network
    """
    block_size = pow(2, 32 - prefixlen)
    start = int(address)
    if start % block_size:
        start += block_size - (start % block_size)
    return ipaddress.IPv4Network((start, prefixlen))


def allocate_layers_cidrs(cidr, layers_masks, azs):
    """
    Allocates for each layer as many subnets as there are AZs.

    :param str cidr: the VPC CIDR, i.e. 10.0.0.0/16
    :param list[int] layers_masks: the prefix length of each layer subnets, in order
    :param int azs: number of AZs
    :returns: list of lists of CIDRs (str), one list per layer
    :raises ValidationError: if the subnets do not fit in the VPC CIDR
    """
    try:
        vpc_net = ipaddress.IPv4Network(cidr)
    except ValueError as error:
        raise ValidationError(f"VPC CIDR {cidr} is invalid: {error}") from error
    layers = []
    pointer = vpc_net.network_address
    for mask in layers_masks:
        if mask < vpc_net.prefixlen:
            raise ValidationError(
                f"Subnet mask /{mask} is larger than the VPC CIDR {cidr}"
            )
        layer = []
        for _ in range(azs):
            subnet = next_aligned_network(pointer, mask)
            if not subnet.subnet_of(vpc_net):
                raise ValidationError(
                    f"Not enough addresses in {cidr} to allocate {azs} subnets of /{mask} for each layer"
                )
            layer.append(str(subnet))
            pointer = subnet.broadcast_address + 1
        layers.append(layer)
    return layers
