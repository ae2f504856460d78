import mid_circular_peer

value = mid_circular_peer.value
