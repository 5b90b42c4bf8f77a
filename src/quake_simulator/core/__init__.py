"""Physics core: block chain, force model, integrators and energy histories."""
