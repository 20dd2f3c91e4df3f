import numpy as np
import pandas as pd

from naturalbreaks import classifier

name = 'enumerate'


def get_partitions(num_items, n_classes, prefix):
    """
    Given a number of items and a number of classes, return all possible combinations of divider locations.

    Result is a list of lists, where each sub-list is a set of divider locations. Each divider is placed
    *before* the zero-based index provided.
    """
    remaining_dividers = (n_classes - 1) - len(prefix)
    if remaining_dividers == 0:
        return [prefix]
    last_divider_loc = prefix[-1] if prefix else 0
    partitions = []
    for next_divider_loc in range(last_divider_loc + 1, num_items - (remaining_dividers - 1)):
        partitions.extend(get_partitions(num_items, n_classes, prefix + [next_divider_loc]))
    return partitions


def get_class_cost(dividers, items):
    """
    Total squared deviation of every item from the mean of its class.
    """
    bounds = [0] + list(dividers) + [len(items)]
    cost = 0.0
    for left, right in zip(bounds[:-1], bounds[1:]):
        members = items[left:right]
        cost += ((members - members.mean()) ** 2).sum()
    return cost


@classifier
def breaks(data, n_classes, is_sorted=False, debug_info=None):
    """
    Given a list of values and a number of classes, return the class breaks that minimize
    the total within-class variance.

    This function operates by generating all possible classings and calculating the cost
    of each. It will not complete in a reasonable amount of time for large numbers of values
    or classes, and is intended to test the correctness of other algorithms.

    It is written for clarity rather than performance.
    """
    values = np.asarray(data)
    if not is_sorted:
        values = np.sort(values)
    items = values.astype(np.float64)

    all_partitions = get_partitions(len(items), n_classes, [])
    df = pd.DataFrame(pd.Series(all_partitions, name='dividers', dtype=object))
    df['cost'] = df['dividers'].apply(get_class_cost, items=items)
    dividers = df[df.cost == df.cost.min()].iloc[0]['dividers']
    if debug_info is not None:
        debug_info['df'] = df
        debug_info['variance'] = df.cost.min()

    kclass = np.empty(n_classes + 1, dtype=values.dtype)
    kclass[0] = values[0]
    kclass[n_classes] = values[-1]
    for class_index, divider in enumerate(dividers, start=1):
        kclass[class_index] = values[divider - 1]
    return kclass
